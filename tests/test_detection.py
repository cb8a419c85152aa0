"""
Tests for toolchain probing and the diagnostics report.
"""

import os

import pytest

from tikzsvg.detection import print_diagnostics, probe_toolchain

pytestmark = pytest.mark.skipif(
    os.name == "nt", reason="fake toolchain is written as POSIX shell scripts",
)


class TestProbeToolchain:
    def test_fake_binaries_found(self, fake_toolchain):
        probes = probe_toolchain(str(fake_toolchain.bin_dir))
        assert probes["latex"].found
        assert probes["latex"].version == "pdfTeX 3.141592653 (fake)"
        assert probes["dvisvgm"].found
        assert "dvisvgm" in probes["dvisvgm"].version

    def test_version_probe_does_not_count_as_compile(self, fake_toolchain):
        probe_toolchain(str(fake_toolchain.bin_dir))
        assert fake_toolchain.calls() == []

    def test_missing_directory(self, tmp_path):
        probes = probe_toolchain(str(tmp_path / "nowhere"))
        assert not probes["latex"].found
        assert probes["latex"].path is None


class TestPrintDiagnostics:
    def test_report_lists_both_tools(self, fake_toolchain):
        report = print_diagnostics(str(fake_toolchain.bin_dir))
        assert "latex" in report
        assert "dvisvgm" in report
        assert "NOT FOUND" not in report

    def test_report_includes_hint_when_missing(self, tmp_path):
        report = print_diagnostics(str(tmp_path / "nowhere"))
        assert "NOT FOUND" in report
        assert "Install" in report or "install" in report
