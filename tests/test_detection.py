"""
Tests for platform detection.
"""

import textwrap

from devbox.core.detection.platform import _normalize_arch, detect_platform, parse_os_release


class TestParseOsRelease:
    def test_ubuntu(self):
        text = textwrap.dedent("""\
            NAME="Ubuntu"
            ID=ubuntu
            ID_LIKE=debian
            VERSION_ID="22.04"
        """)
        assert parse_os_release(text) == ("ubuntu", "debian")

    def test_rhel_quoted_list(self):
        text = 'ID="rocky"\nID_LIKE="rhel centos fedora"\n'
        assert parse_os_release(text) == ("rocky", "rhel", "centos", "fedora")

    def test_ignores_other_keys(self):
        assert parse_os_release("VERSION_ID=9\nPRETTY_NAME=x\n") == ()


class TestArch:
    def test_normalize(self):
        assert _normalize_arch("aarch64") == "arm64"
        assert _normalize_arch("AMD64") == "x86_64"
        assert _normalize_arch("riscv64") == "riscv64"


class TestDetectPlatform:
    def test_reads_home_and_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setenv("PATH", "/usr/bin:/bin")
        monkeypatch.setattr("platform.system", lambda: "Linux")
        os_release = tmp_path / "os-release"
        os_release.write_text("ID=debian\n")

        facts = detect_platform(os_release)
        assert facts.os_family == "linux"
        assert facts.home == tmp_path
        assert facts.path == ("/usr/bin", "/bin")
        assert facts.distro_like == ("debian",)

    def test_missing_os_release(self, tmp_path, monkeypatch):
        monkeypatch.setattr("platform.system", lambda: "Linux")
        facts = detect_platform(tmp_path / "missing")
        assert facts.distro_like == ()

    def test_darwin_skips_os_release(self, tmp_path, monkeypatch):
        monkeypatch.setattr("platform.system", lambda: "Darwin")
        os_release = tmp_path / "os-release"
        os_release.write_text("ID=debian\n")
        facts = detect_platform(os_release)
        assert facts.is_macos
        assert facts.distro_like == ()
