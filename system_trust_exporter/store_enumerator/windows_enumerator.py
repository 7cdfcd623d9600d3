import logging
import ssl
from typing import List, Optional, Sequence

from system_trust_exporter.store_enumerator.store_enumerator_interface import (
    StoreEnumeratorInterface,
    StoreUnavailableError,
)


class WindowsStoreEnumerator(StoreEnumeratorInterface):
    """Read the trust anchors from the Windows system certificate stores.
    """

    DEFAULT_STORE_NAMES = ["ROOT"]

    # Encoding reported by the CryptoAPI for X.509 certificates; PKCS#7 blobs are ignored
    _X509_ENCODING = "x509_asn"

    def __init__(self, store_names: Optional[Sequence[str]] = None) -> None:
        if store_names is None:
            store_names = self.DEFAULT_STORE_NAMES
        self._store_names = list(store_names)

    def enumerate_trust_anchors(self) -> List[bytes]:
        enum_certificates = getattr(ssl, "enum_certificates", None)
        if enum_certificates is None:
            raise StoreUnavailableError("The Windows certificate store is only available on Windows")

        all_raw_certificates = []
        for store_name in self._store_names:
            logging.info(f"Reading trust anchors from the {store_name} system store")
            try:
                store_entries = enum_certificates(store_name)
            except OSError as e:
                raise StoreUnavailableError(f"Could not open the {store_name} system store: {e}") from e

            for cert_bytes, encoding_type, _trust in store_entries:
                if encoding_type != self._X509_ENCODING:
                    continue
                all_raw_certificates.append(cert_bytes)

        return all_raw_certificates
