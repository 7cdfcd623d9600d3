import ssl
import subprocess
import sys
from pathlib import Path

import pytest

from system_trust_exporter.config import ExporterConfig
from system_trust_exporter.store_enumerator import (
    DirectoryStoreEnumerator,
    MacOsStoreEnumerator,
    PemBundleStoreEnumerator,
    PlatformEnum,
    StoreUnavailableError,
    TrustAnchorEnumerator,
    WindowsStoreEnumerator,
)

from certificate_factory import create_root_certificate, create_pem_bundle


class TestPemBundleStoreEnumerator:
    def test_enumerate(self, tmp_path):
        # Given a PEM bundle on disk
        all_der_certificates = [create_root_certificate(f"Test Root CA {i}") for i in range(3)]
        bundle_path = tmp_path / "ca-certificates.crt"
        bundle_path.write_text(create_pem_bundle(*all_der_certificates))

        # When enumerating it
        enumerator = PemBundleStoreEnumerator([tmp_path / "missing.pem", bundle_path])

        # The first existing bundle is read
        assert all_der_certificates == enumerator.enumerate_trust_anchors()

    def test_only_first_bundle_is_read(self, tmp_path):
        first_bundle_path = tmp_path / "first.pem"
        first_bundle_path.write_text(create_pem_bundle(create_root_certificate("Test Root CA 1")))
        second_bundle_path = tmp_path / "second.pem"
        second_bundle_path.write_text(create_pem_bundle(create_root_certificate("Test Root CA 2")))

        enumerator = PemBundleStoreEnumerator([first_bundle_path, second_bundle_path])
        assert [create_root_certificate("Test Root CA 1")] == enumerator.enumerate_trust_anchors()

    def test_no_bundle(self, tmp_path):
        enumerator = PemBundleStoreEnumerator([tmp_path / "missing.pem"])
        with pytest.raises(StoreUnavailableError):
            enumerator.enumerate_trust_anchors()


class TestDirectoryStoreEnumerator:
    def test_enumerate(self, tmp_path):
        # Given an Android-style folder with one PEM file, one DER file and one junk file
        system_dir = tmp_path / "cacerts"
        system_dir.mkdir()
        pem_cert = create_root_certificate("Test Root CA 1")
        der_cert = create_root_certificate("Test Root CA 2")
        (system_dir / "b0f3e76e.0").write_text(create_pem_bundle(pem_cert))
        (system_dir / "a1b2c3d4.0").write_bytes(der_cert)
        (system_dir / "c0ffee00.0").write_bytes(b"junk")
        (system_dir / "subfolder").mkdir()

        # When enumerating it
        enumerator = DirectoryStoreEnumerator(
            [tmp_path / "missing", system_dir], tmp_path / "cacerts-added", tmp_path / "cacerts-removed"
        )

        # Every file is returned, ordered by file name; the junk is left for the exporter to drop
        assert [der_cert, pem_cert, b"junk"] == enumerator.enumerate_trust_anchors()

    def test_first_system_directory_wins(self, tmp_path):
        # Given an updated APEX folder that dropped a root still present in the system image's folder
        kept_cert = create_root_certificate("Kept Root CA")
        distrusted_cert = create_root_certificate("Distrusted Root CA")
        apex_dir = tmp_path / "apex"
        apex_dir.mkdir()
        (apex_dir / "0a0a0a0a.0").write_bytes(kept_cert)
        system_dir = tmp_path / "system"
        system_dir.mkdir()
        (system_dir / "0a0a0a0a.0").write_bytes(kept_cert)
        (system_dir / "0b0b0b0b.0").write_bytes(distrusted_cert)

        # When enumerating the store
        enumerator = DirectoryStoreEnumerator(
            [apex_dir, system_dir], tmp_path / "cacerts-added", tmp_path / "cacerts-removed"
        )

        # Only the APEX folder is read
        assert [kept_cert] == enumerator.enumerate_trust_anchors()

    def test_user_added_and_removed(self, tmp_path):
        # Given a system folder with two roots, one of which the user removed, and one root the user added
        kept_cert = create_root_certificate("Kept Root CA")
        removed_cert = create_root_certificate("Removed Root CA")
        added_cert = create_root_certificate("User Root CA")
        system_dir = tmp_path / "cacerts"
        system_dir.mkdir()
        (system_dir / "0a0a0a0a.0").write_bytes(kept_cert)
        (system_dir / "0b0b0b0b.0").write_bytes(removed_cert)
        removed_dir = tmp_path / "cacerts-removed"
        removed_dir.mkdir()
        (removed_dir / "0b0b0b0b.0").write_bytes(removed_cert)
        added_dir = tmp_path / "cacerts-added"
        added_dir.mkdir()
        (added_dir / "0c0c0c0c.0").write_text(create_pem_bundle(added_cert))

        # When enumerating the store
        enumerator = DirectoryStoreEnumerator([system_dir], added_dir, removed_dir)

        # The removed root is skipped and the added root comes after the system ones
        assert [kept_cert, added_cert] == enumerator.enumerate_trust_anchors()

    def test_unreadable_file_is_skipped(self, tmp_path, monkeypatch):
        # Given a folder where one certificate file cannot be read
        readable_cert = create_root_certificate("Test Root CA 1")
        system_dir = tmp_path / "cacerts"
        system_dir.mkdir()
        (system_dir / "0a0a0a0a.0").write_bytes(readable_cert)
        unreadable_path = system_dir / "0b0b0b0b.0"
        unreadable_path.write_bytes(create_root_certificate("Test Root CA 2"))

        original_read_bytes = Path.read_bytes

        def fake_read_bytes(path):
            if path == unreadable_path:
                raise PermissionError("Permission denied")
            return original_read_bytes(path)

        monkeypatch.setattr(Path, "read_bytes", fake_read_bytes)

        # When enumerating the store, the other certificates are still returned
        enumerator = DirectoryStoreEnumerator([system_dir], tmp_path / "cacerts-added", tmp_path / "cacerts-removed")
        assert [readable_cert] == enumerator.enumerate_trust_anchors()

    def test_no_directory(self, tmp_path):
        enumerator = DirectoryStoreEnumerator([tmp_path / "missing"])
        with pytest.raises(StoreUnavailableError):
            enumerator.enumerate_trust_anchors()


class TestMacOsStoreEnumerator:
    def test_enumerate(self, monkeypatch):
        # Given the security tool returning two certificates
        all_der_certificates = [create_root_certificate(f"Test Root CA {i}") for i in range(2)]
        called_commands = []

        def fake_check_output(command, **kwargs):
            called_commands.append(command)
            return create_pem_bundle(*all_der_certificates).encode("ascii")

        monkeypatch.setattr(subprocess, "check_output", fake_check_output)

        # When enumerating the keychain
        enumerator = MacOsStoreEnumerator(["/tmp/Test.keychain"])

        # The certificates are returned
        assert all_der_certificates == enumerator.enumerate_trust_anchors()
        assert [["security", "find-certificate", "-a", "-p", "/tmp/Test.keychain"]] == called_commands

    def test_security_tool_fails(self, monkeypatch):
        def fake_check_output(command, **kwargs):
            raise subprocess.CalledProcessError(returncode=50, cmd=command)

        monkeypatch.setattr(subprocess, "check_output", fake_check_output)
        with pytest.raises(StoreUnavailableError):
            MacOsStoreEnumerator().enumerate_trust_anchors()

    def test_security_tool_missing(self, monkeypatch):
        def fake_check_output(command, **kwargs):
            raise FileNotFoundError("security")

        monkeypatch.setattr(subprocess, "check_output", fake_check_output)
        with pytest.raises(StoreUnavailableError):
            MacOsStoreEnumerator().enumerate_trust_anchors()


class TestWindowsStoreEnumerator:
    def test_enumerate(self, monkeypatch):
        # Given a ROOT store with one certificate and one PKCS#7 blob
        der_cert = create_root_certificate("Test Root CA 1")

        def fake_enum_certificates(store_name):
            assert "ROOT" == store_name
            return [(der_cert, "x509_asn", True), (b"pkcs7", "pkcs_7_asn", True)]

        monkeypatch.setattr(ssl, "enum_certificates", fake_enum_certificates, raising=False)

        # Only the X.509 certificate is returned
        assert [der_cert] == WindowsStoreEnumerator().enumerate_trust_anchors()

    def test_store_cannot_be_opened(self, monkeypatch):
        def fake_enum_certificates(store_name):
            raise PermissionError("Access denied")

        monkeypatch.setattr(ssl, "enum_certificates", fake_enum_certificates, raising=False)
        with pytest.raises(StoreUnavailableError):
            WindowsStoreEnumerator().enumerate_trust_anchors()

    def test_not_on_windows(self, monkeypatch):
        monkeypatch.delattr(ssl, "enum_certificates", raising=False)
        with pytest.raises(StoreUnavailableError):
            WindowsStoreEnumerator().enumerate_trust_anchors()


class TestTrustAnchorEnumerator:
    @pytest.mark.parametrize(
        "sys_platform, expected_platform",
        [
            ("linux", PlatformEnum.LINUX),
            ("darwin", PlatformEnum.MACOS),
            ("win32", PlatformEnum.WINDOWS),
            ("android", PlatformEnum.ANDROID),
        ],
    )
    def test_detect_platform(self, monkeypatch, sys_platform, expected_platform):
        monkeypatch.delenv("ANDROID_ROOT", raising=False)
        monkeypatch.setattr(sys, "platform", sys_platform)
        assert expected_platform == TrustAnchorEnumerator.detect_platform()

    def test_detect_android_from_environment(self, monkeypatch):
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("ANDROID_ROOT", "/system")
        assert PlatformEnum.ANDROID == TrustAnchorEnumerator.detect_platform()

    def test_get_enumerator_from_config(self, tmp_path):
        # Given a configuration pointing at a custom bundle
        bundle_path = tmp_path / "bundle.pem"
        bundle_path.write_text(create_pem_bundle(create_root_certificate("Test Root CA 1")))
        config = ExporterConfig(platform=PlatformEnum.LINUX, bundle_paths=[bundle_path])

        # The enumerator for that platform reads that bundle
        enumerator = TrustAnchorEnumerator.get_enumerator(config=config)
        assert isinstance(enumerator, PemBundleStoreEnumerator)
        assert [create_root_certificate("Test Root CA 1")] == enumerator.enumerate_trust_anchors()

    def test_get_android_enumerator_from_config(self, tmp_path):
        # Given a configuration pointing at custom Android folders
        system_cert = create_root_certificate("Test Root CA 1")
        added_cert = create_root_certificate("User Root CA")
        (tmp_path / "cacerts").mkdir()
        (tmp_path / "cacerts" / "0a0a0a0a.0").write_bytes(system_cert)
        (tmp_path / "cacerts-added").mkdir()
        (tmp_path / "cacerts-added" / "0c0c0c0c.0").write_bytes(added_cert)
        config = ExporterConfig(
            platform=PlatformEnum.ANDROID,
            directories=[tmp_path / "cacerts"],
            user_added_directory=tmp_path / "cacerts-added",
            user_removed_directory=tmp_path / "cacerts-removed",
        )

        # The enumerator reads the system and user-added folders
        enumerator = TrustAnchorEnumerator.get_enumerator(config=config)
        assert [system_cert, added_cert] == enumerator.enumerate_trust_anchors()

    def test_get_enumerator_platform_overrides_config(self):
        config = ExporterConfig(platform=PlatformEnum.LINUX)
        enumerator = TrustAnchorEnumerator.get_enumerator(PlatformEnum.WINDOWS, config)
        assert isinstance(enumerator, WindowsStoreEnumerator)

    @pytest.mark.parametrize(
        "platform, expected_cls",
        [
            (PlatformEnum.LINUX, PemBundleStoreEnumerator),
            (PlatformEnum.ANDROID, DirectoryStoreEnumerator),
            (PlatformEnum.MACOS, MacOsStoreEnumerator),
            (PlatformEnum.WINDOWS, WindowsStoreEnumerator),
        ],
    )
    def test_get_enumerator_defaults(self, platform, expected_cls):
        assert isinstance(TrustAnchorEnumerator.get_enumerator(platform), expected_cls)
