from typing import List

from system_trust_exporter.trust_store_exporter import TrustStoreExporter


# The same channel name is used on every platform
CHANNEL_NAME = "system_trust_exporter/certificates"

GET_CA_CERTIFICATES_METHOD = "getCACertificates"


class MethodNotImplementedError(NotImplementedError):
    pass


class CertificatesMethodHandler:
    """Answer the host application's method calls on the certificates channel.
    """

    def __init__(self, exporter: TrustStoreExporter) -> None:
        self._exporter = exporter

    def handle(self, method_name: str) -> List[str]:
        if method_name == GET_CA_CERTIFICATES_METHOD:
            return self._exporter.get_ca_certificates()
        raise MethodNotImplementedError(f"Method {method_name} is not implemented on channel {CHANNEL_NAME}")
