"""Thin CLI wrapper for deploy_imagegen.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from deploy_imagegen import __version__
from deploy_imagegen.config import get_settings, print_settings_json
from deploy_imagegen.errors import ImageBuildError

app = typer.Typer(
    name="imagegen",
    help="Deploy Image Generator - build and publish container images for deployments",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"deploy-imagegen version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Deploy Image Generator - build and publish container images for deployments."""
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings), soft_wrap=True)
    else:
        tmp_dir_display = (
            str(settings.tmp_dir) if settings.tmp_dir else "(system default)"
        )
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Workspace:[/bold]")
        console.print(f"  Temp directory:      {tmp_dir_display}")
        console.print(f"  Workspace prefix:    {settings.workspace_prefix}")
        console.print(f"  Manifest filename:   {settings.manifest_filename}")
        console.print()
        console.print("[bold]Toolchain:[/bold]")
        console.print(f"  Container CLI:       {settings.container_cli}")
        console.print(f"  Log level:           {settings.log_level}")
        console.print()
        console.print("[bold]Timeouts (seconds):[/bold]")
        console.print(f"  Build timeout:       {settings.build_timeout}")


@app.command()
def spec(
    descriptor_file: Annotated[
        Path, typer.Argument(help="Deployment descriptor (YAML or JSON)")
    ],
    image: Annotated[
        str,
        typer.Option("--image", "-i", help="Image base name, e.g. myrepo/app"),
    ],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show the build spec derived for a deployment."""
    from deploy_imagegen.builds.specs import build_image_specs
    from deploy_imagegen.descriptor import load_descriptor

    try:
        descriptor = load_descriptor(descriptor_file)
        build_spec = build_image_specs(descriptor, image)
    except ImageBuildError as e:
        _print_error(e, json_output)
        raise typer.Exit(code=1) from None

    if json_output:
        output = {
            "image_tag": build_spec.image_tag,
            "staged_files": [str(p) for p in build_spec.staged_files],
            "install_targets": list(build_spec.install_targets),
        }
        console.print(json.dumps(output, indent=2), soft_wrap=True)
    else:
        console.print(f"[bold]Image tag:[/bold] {build_spec.image_tag}")
        console.print("[bold]Staged files:[/bold]")
        for path in build_spec.staged_files:
            console.print(f"  {path}", markup=False)
        console.print("[bold]Install targets:[/bold]")
        for target in build_spec.install_targets:
            console.print(f"  {target}", markup=False)


@app.command()
def manifest(
    targets: Annotated[
        list[str] | None,
        typer.Option("--target", "-t", help="Install target (can be repeated)"),
    ] = None,
    no_install: Annotated[
        bool,
        typer.Option("--no-install", help="Render the copy-only manifest"),
    ] = False,
) -> None:
    """Print the build manifest for a set of install targets."""
    from deploy_imagegen.builds.manifest import render_manifest
    from deploy_imagegen.builds.specs import DEFAULT_INSTALL_TARGETS

    install_targets: list[str] = []
    if not no_install:
        install_targets = list(targets) if targets else list(DEFAULT_INSTALL_TARGETS)

    try:
        content = render_manifest(install_targets)
    except ValueError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    typer.echo(content, nl=False)


@app.command()
def build(
    descriptor_file: Annotated[
        Path, typer.Argument(help="Deployment descriptor (YAML or JSON)")
    ],
    image: Annotated[
        str,
        typer.Option("--image", "-i", help="Image base name, e.g. myrepo/app"),
    ],
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", help="Build deadline in seconds", min=1),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Build the image for a deployment and push it to its registry.

    Output of the container toolchain is streamed as it runs.
    """
    from deploy_imagegen.builds.runner import ContainerToolchain
    from deploy_imagegen.builds.service import build_and_upload_image
    from deploy_imagegen.descriptor import load_descriptor

    settings = get_settings()
    if timeout is not None:
        settings = settings.model_copy(update={"build_timeout": timeout})

    # Keep stdout for the JSON document; toolchain output still streams
    toolchain = ContainerToolchain(
        settings.container_cli, output=sys.stderr if json_output else None
    )

    try:
        descriptor = load_descriptor(descriptor_file)
        if not json_output:
            err_console.print(f"[green]Building image for {descriptor.id}...[/green]")
        image_ref = build_and_upload_image(
            descriptor, image, settings=settings, toolchain=toolchain
        )
    except ImageBuildError as e:
        _print_error(e, json_output)
        raise typer.Exit(code=1) from None

    if json_output:
        console.print(json.dumps({"image": image_ref}, indent=2), soft_wrap=True)
    else:
        console.print(f"[green]Published image {image_ref}[/green]")


def _print_error(error: ImageBuildError, json_output: bool) -> None:
    if json_output:
        console.print(json.dumps({"error": error.to_dict()}, indent=2), soft_wrap=True)
    else:
        err_console.print(
            f"[red]Error ({error.phase.value}): {escape(str(error))}[/red]"
        )


if __name__ == "__main__":
    app()
