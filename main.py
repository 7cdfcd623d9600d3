from pathlib import Path
import argparse
import json
import logging
import sys

from system_trust_exporter import __version__
from system_trust_exporter.certificate_utils import CertificateUtils
from system_trust_exporter.config import ExporterConfig
from system_trust_exporter.method_channel import CertificatesMethodHandler, GET_CA_CERTIFICATES_METHOD
from system_trust_exporter.store_enumerator import PlatformEnum, TrustAnchorEnumerator
from system_trust_exporter.trust_store_exporter import TrustStoreExporter


def export_trust_store(config: ExporterConfig, output_format: str) -> None:
    """Export the trust anchors of the platform's native trust store as PEM (the default) or as a JSON list.
    """
    exporter = TrustStoreExporter.from_config(config)
    all_certs_pem = CertificatesMethodHandler(exporter).handle(GET_CA_CERTIFICATES_METHOD)
    if output_format == "json":
        print(json.dumps(all_certs_pem, indent=2))
    else:
        sys.stdout.write("".join(all_certs_pem))


def list_trust_store(config: ExporterConfig) -> None:
    """Print the subject name of each trust anchor of the platform's native trust store.
    """
    exporter = TrustStoreExporter.from_config(config)
    report = exporter.get_ca_certificates_report()
    for cert_pem in report.pem_certificates:
        der_certificate = CertificateUtils.pem_to_der_list(cert_pem)[0]
        parsed_cert = CertificateUtils.parse_der_certificate(der_certificate)
        fingerprint = CertificateUtils.compute_content_key(der_certificate).hex()
        print(f"{fingerprint}  {CertificateUtils.get_canonical_subject_name(parsed_cert)}")

    print(
        f"{report.exported_count} certificates, {report.duplicate_count} duplicates, "
        f"{report.malformed_count} malformed",
        file=sys.stderr,
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="System Trust Store Exporter CLI.")
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument("--config", action="store", help="YAML file with the trust store locations to use.")
    parser.add_argument(
        "--platform",
        action="store",
        choices=[platform.name for platform in PlatformEnum],
        help="Platform whose trust store should be read; detected automatically by default.",
    )
    parser.add_argument("--list", action="store_true", help=str(list_trust_store.__doc__))
    parser.add_argument("--format", action="store", choices=["pem", "json"], default="pem")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, stream=sys.stderr)

    if args.config:
        exporter_config = ExporterConfig.from_yaml(Path(args.config))
    else:
        exporter_config = ExporterConfig.get_default()

    if args.platform:
        exporter_config.platform = PlatformEnum[args.platform]
    elif exporter_config.platform is None:
        exporter_config.platform = TrustAnchorEnumerator.detect_platform()

    if args.list and args.format == "json":
        raise ValueError("Cannot combine --list with --format json.")

    if args.list:
        list_trust_store(exporter_config)
    else:
        export_trust_store(exporter_config, args.format)
