"""Tests for builds/manifest.py module."""

import pytest

from deploy_imagegen.builds.manifest import (
    BUILDER_BASE_IMAGE,
    ENTRYPOINT,
    RUNTIME_BASE_IMAGE,
    render_manifest,
)
from deploy_imagegen.builds.specs import DEFAULT_INSTALL_TARGETS


class TestRenderManifest:
    """Tests for render_manifest function."""

    def test_empty_targets_copy_only(self):
        """No targets should render a copy-only manifest."""
        content = render_manifest([])

        assert BUILDER_BASE_IMAGE not in content
        assert "go install" not in content
        assert "--from=" not in content
        assert content.splitlines() == [
            f"FROM {RUNTIME_BASE_IMAGE}",
            "WORKDIR /weaver/",
            "COPY . .",
            f'ENTRYPOINT ["{ENTRYPOINT}"]',
        ]

    def test_two_stage_with_targets(self):
        """Targets should render a builder stage and copy its output."""
        content = render_manifest(list(DEFAULT_INSTALL_TARGETS))
        lines = content.splitlines()

        assert lines[0] == f"FROM {BUILDER_BASE_IMAGE} AS builder"
        assert f"FROM {RUNTIME_BASE_IMAGE}" in lines
        assert "COPY --from=builder /go/bin/ /weaver/" in lines
        assert lines[-1] == f'ENTRYPOINT ["{ENTRYPOINT}"]'

    def test_one_install_step_per_target_in_order(self):
        """Each target should get exactly one install step, in input order."""
        targets = ["example.com/c@v1", "example.com/a@v1", "example.com/b@v1"]
        content = render_manifest(targets)

        install_lines = [
            line for line in content.splitlines() if line.startswith("RUN go install")
        ]
        assert install_lines == [f"RUN go install {t}" for t in targets]

    def test_same_entrypoint_for_both_forms(self):
        """Both manifest forms should set the same entrypoint."""
        assert render_manifest([]).splitlines()[-1] == (
            render_manifest(["example.com/a@v1"]).splitlines()[-1]
        )

    def test_deterministic(self):
        """Equal inputs should render identical bytes."""
        targets = ["example.com/a@v1", "example.com/b@v1"]
        assert render_manifest(targets).encode() == render_manifest(
            list(targets)
        ).encode()
        assert render_manifest([]) == render_manifest(())

    def test_newline_terminated(self):
        """Manifest should end with a newline."""
        assert render_manifest([]).endswith("\n")

    def test_invalid_target_rejected(self):
        """Invalid targets should be rejected before rendering."""
        with pytest.raises(ValueError):
            render_manifest(["ok@v1", "bad\nFROM scratch"])
