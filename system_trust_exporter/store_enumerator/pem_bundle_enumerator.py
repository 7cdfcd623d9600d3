import logging
from pathlib import Path
from typing import List, Optional, Sequence

from system_trust_exporter.certificate_utils import CertificateUtils
from system_trust_exporter.store_enumerator.store_enumerator_interface import (
    StoreEnumeratorInterface,
    StoreUnavailableError,
)


class PemBundleStoreEnumerator(StoreEnumeratorInterface):
    """Read the trust anchors from the system-wide PEM bundle maintained by the distribution's ca-certificates.
    """

    DEFAULT_BUNDLE_PATHS = [
        Path("/etc/ssl/certs/ca-certificates.crt"),  # Debian, Ubuntu, Alpine, Gentoo
        Path("/etc/pki/ca-trust/extracted/pem/tls-ca-bundle.pem"),  # Fedora, RHEL
        Path("/etc/ca-certificates/extracted/tls-ca-bundle.pem"),  # Arch
        Path("/var/lib/ca-certificates/ca-bundle.pem"),  # openSUSE
        Path("/etc/ssl/cert.pem"),  # Alpine, BSDs
    ]

    def __init__(self, bundle_paths: Optional[Sequence[Path]] = None) -> None:
        if bundle_paths is None:
            bundle_paths = self.DEFAULT_BUNDLE_PATHS
        self._bundle_paths = [Path(path) for path in bundle_paths]

    def enumerate_trust_anchors(self) -> List[bytes]:
        # Only the first bundle found is used; they are alternative locations of the same store
        for bundle_path in self._bundle_paths:
            if not bundle_path.is_file():
                continue

            logging.info(f"Reading trust anchors from {bundle_path}")
            try:
                bundle_content = bundle_path.read_bytes()
            except OSError as e:
                raise StoreUnavailableError(f"Could not read CA bundle {bundle_path}: {e}") from e
            return CertificateUtils.pem_to_der_list(bundle_content)

        searched_paths = ", ".join(str(path) for path in self._bundle_paths)
        raise StoreUnavailableError(f"No CA bundle found; searched {searched_paths}")
