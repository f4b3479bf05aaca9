"""TOTP secrets, provisioning URIs and code verification."""

import base64
import io
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pyotp
import qrcode

SECRET_LENGTH = 32
DEFAULT_WINDOW = 2
_CODE_PATTERN = re.compile(r"^\d{6}$")


@dataclass(frozen=True, slots=True)
class TotpSecret:
    secret: str
    provisioning_uri: str


class TotpService:
    """Authenticator-app compatible time-based one-time passwords."""

    def __init__(self, issuer: str) -> None:
        self.issuer = issuer

    def generate_secret(self, label: str) -> TotpSecret:
        secret = pyotp.random_base32(length=SECRET_LENGTH)
        uri = pyotp.TOTP(secret).provisioning_uri(name=label, issuer_name=self.issuer)
        return TotpSecret(secret=secret, provisioning_uri=uri)

    def verify(
        self,
        secret: Optional[str],
        code: Optional[str],
        window: int = DEFAULT_WINDOW,
        for_time: Optional[datetime] = None,
    ) -> bool:
        """Accept a 6-digit code within ``window`` 30-second steps of ``for_time``."""
        if not secret or not code:
            return False
        candidate = code.strip().replace(" ", "")
        if not _CODE_PATTERN.match(candidate):
            return False
        return pyotp.TOTP(secret).verify(candidate, for_time=for_time, valid_window=window)

    @staticmethod
    def qr_data_uri(provisioning_uri: str) -> str:
        image = qrcode.make(provisioning_uri)
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/png;base64,{encoded}"
