import base64
import logging
import re
from typing import List, Union

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.x509 import NameOID, Name, Certificate, load_der_x509_certificate


PEM_HEADER = "-----BEGIN CERTIFICATE-----"
PEM_FOOTER = "-----END CERTIFICATE-----"

_PEM_BLOCK_REGEX = re.compile(f"{PEM_HEADER}(.*?){PEM_FOOTER}", re.DOTALL)


class MalformedCertificateError(ValueError):
    pass


class CertificateUtils:
    @staticmethod
    def _get_names_with_oid(name_field: Name, name_oid: NameOID) -> List[str]:
        return [cn.value for cn in name_field.get_attributes_for_oid(name_oid)]

    @classmethod
    def _get_name_as_text(cls, name_field: Name) -> str:
        return ", ".join(["{}={}".format(attr.oid._name, attr.value) for attr in name_field])

    @classmethod
    def get_canonical_subject_name(cls, certificate: Certificate) -> str:
        """Compute a short display name for the certificate: its CN, or its OU, or its O, or the whole Subject.
        """
        name_field = certificate.subject
        # If everything fails, we return the whole Subject field
        final_name = cls._get_name_as_text(name_field)
        common_names = cls._get_names_with_oid(name_field, NameOID.COMMON_NAME)
        if common_names:
            # We don't support certs with multiple CNs
            final_name = common_names[0]
        else:
            orgun_names = cls._get_names_with_oid(name_field, NameOID.ORGANIZATIONAL_UNIT_NAME)
            if orgun_names:
                final_name = orgun_names[0]
            else:
                org_names = cls._get_names_with_oid(name_field, NameOID.ORGANIZATION_NAME)
                if org_names:
                    final_name = org_names[0]

        return final_name.strip()

    @staticmethod
    def parse_der_certificate(raw_certificate: bytes) -> Certificate:
        """Parse the supplied bytes as an X.509 certificate, only to confirm that they are well-formed DER.

        The signature is not checked and nothing is verified against any other certificate.
        """
        if not isinstance(raw_certificate, (bytes, bytearray, memoryview)):
            raise MalformedCertificateError(f"Expected DER bytes, got {type(raw_certificate).__name__}")
        try:
            return load_der_x509_certificate(bytes(raw_certificate), default_backend())
        except ValueError as e:
            raise MalformedCertificateError(f"Could not parse DER certificate: {e}") from e

    @staticmethod
    def certificate_to_pem(certificate: Certificate) -> str:
        """Encode the certificate as a PEM block with 64-character lines and a trailing newline.
        """
        return certificate.public_bytes(Encoding.PEM).decode("ascii")

    @staticmethod
    def pem_to_der_list(pem_content: Union[str, bytes]) -> List[bytes]:
        """Extract the DER bytes of every certificate block found in a PEM bundle.

        The DER bytes are not parsed here; blocks that are not even valid base64 are dropped.
        """
        if isinstance(pem_content, bytes):
            pem_content = pem_content.decode("ascii", errors="replace")

        all_der_certificates = []
        for pem_body in _PEM_BLOCK_REGEX.findall(pem_content):
            try:
                # Strip the line breaks and any whitespace before decoding
                all_der_certificates.append(base64.b64decode("".join(pem_body.split()), validate=True))
            except ValueError:
                # binascii.Error for bad base64, plain ValueError for non-ASCII characters
                logging.error("Skipping PEM block with an invalid base64 body")
        return all_der_certificates

    @staticmethod
    def compute_content_key(raw_certificate: bytes) -> bytes:
        """The SHA-256 digest of the raw DER bytes; two certificates with the same key are duplicates.
        """
        digest = hashes.Hash(hashes.SHA256(), default_backend())
        digest.update(bytes(raw_certificate))
        return digest.finalize()
