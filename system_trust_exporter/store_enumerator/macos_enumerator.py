import logging
import subprocess
from typing import List, Optional, Sequence

from system_trust_exporter.certificate_utils import CertificateUtils
from system_trust_exporter.store_enumerator.store_enumerator_interface import (
    StoreEnumeratorInterface,
    StoreUnavailableError,
)


class MacOsStoreEnumerator(StoreEnumeratorInterface):
    """Read the trust anchors from the macOS system keychains using the security command line tool.
    """

    DEFAULT_KEYCHAINS = ["/System/Library/Keychains/SystemRootCertificates.keychain"]

    _SECURITY_CMD = ["security", "find-certificate", "-a", "-p"]

    def __init__(self, keychains: Optional[Sequence[str]] = None) -> None:
        if keychains is None:
            keychains = self.DEFAULT_KEYCHAINS
        self._keychains = [str(keychain) for keychain in keychains]

    def enumerate_trust_anchors(self) -> List[bytes]:
        all_raw_certificates = []
        for keychain in self._keychains:
            logging.info(f"Reading trust anchors from keychain {keychain}")
            try:
                security_output = subprocess.check_output(
                    self._SECURITY_CMD + [keychain], stderr=subprocess.DEVNULL, timeout=30
                )
            except (OSError, subprocess.SubprocessError) as e:
                raise StoreUnavailableError(f"Could not read keychain {keychain}: {e}") from e

            all_raw_certificates.extend(CertificateUtils.pem_to_der_list(security_output))

        return all_raw_certificates
