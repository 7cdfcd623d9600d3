import logging
from typing import Iterable, List, Optional, Set

from system_trust_exporter.certificate_utils import CertificateUtils, MalformedCertificateError
from system_trust_exporter.config import ExporterConfig
from system_trust_exporter.store_enumerator import StoreEnumeratorInterface, TrustAnchorEnumerator


class ExportReport:
    """The PEM certificates produced by one export, and what was dropped along the way.
    """

    def __init__(
        self,
        pem_certificates: List[str],
        malformed_count: int = 0,
        duplicate_count: int = 0,
        store_error: Optional[str] = None,
    ) -> None:
        self.pem_certificates = pem_certificates
        self.malformed_count = malformed_count
        self.duplicate_count = duplicate_count
        self.store_error = store_error

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExportReport):
            return False
        return self.__dict__ == other.__dict__

    @property
    def exported_count(self) -> int:
        return len(self.pem_certificates)


class TrustStoreExporter:
    """Turn the raw DER trust anchors of a platform store into a deduplicated list of PEM certificates.

    The exporter keeps no state between calls: each call is a one-shot snapshot of the store. No call ever raises;
    a store that cannot be read yields an empty list and malformed entries are skipped.
    """

    def __init__(self, store_enumerator: Optional[StoreEnumeratorInterface] = None) -> None:
        self._store_enumerator = store_enumerator

    @classmethod
    def from_config(cls, config: ExporterConfig) -> "TrustStoreExporter":
        return cls(TrustAnchorEnumerator.get_enumerator(config=config))

    def export(self, raw_certificates: Iterable[bytes]) -> List[str]:
        return self.export_with_report(raw_certificates).pem_certificates

    def export_with_report(self, raw_certificates: Iterable[bytes]) -> ExportReport:
        pem_certificates = []
        seen_content_keys: Set[bytes] = set()
        malformed_count = 0
        duplicate_count = 0

        try:
            for index, raw_certificate in enumerate(raw_certificates):
                try:
                    certificate = CertificateUtils.parse_der_certificate(raw_certificate)
                except MalformedCertificateError as e:
                    logging.warning(f"Skipping malformed certificate at index {index}: {e}")
                    malformed_count += 1
                    continue

                # Only the first occurrence of a given DER content is kept
                content_key = CertificateUtils.compute_content_key(raw_certificate)
                if content_key in seen_content_keys:
                    logging.debug(f"Skipping duplicate certificate {content_key.hex()} at index {index}")
                    duplicate_count += 1
                    continue
                seen_content_keys.add(content_key)

                pem_certificates.append(CertificateUtils.certificate_to_pem(certificate))

        except Exception as e:
            # The enumeration itself failed midway; whatever was read is discarded
            logging.error(f"Could not enumerate the trust store: {e!r}")
            return ExportReport([], malformed_count, duplicate_count, store_error=str(e))

        if malformed_count:
            logging.warning(f"Skipped {malformed_count} malformed certificate(s)")
        return ExportReport(pem_certificates, malformed_count, duplicate_count)

    def get_ca_certificates(self) -> List[str]:
        return self.get_ca_certificates_report().pem_certificates

    def get_ca_certificates_report(self) -> ExportReport:
        """Read the platform trust store and export its content; an unreadable store yields an empty report.
        """
        try:
            store_enumerator = self._store_enumerator
            if store_enumerator is None:
                store_enumerator = TrustAnchorEnumerator.get_enumerator()
            raw_certificates = store_enumerator.enumerate_trust_anchors()
        except Exception as e:
            logging.error(f"Failed to load system CA certificates: {e!r}")
            return ExportReport([], store_error=str(e))

        return self.export_with_report(raw_certificates)
