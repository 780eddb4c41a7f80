"""
QR code rendering for the public emergency link.
"""
import base64
from io import BytesIO

import qrcode
from django.conf import settings


def emergency_url(public_id: str) -> str:
    return f"{settings.PUBLIC_BASE_URL}/e/{public_id}"


def qr_data_url(payload: str) -> str:
    """Render ``payload`` as a PNG QR code and return it as a data URL."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode()
    return f"data:image/png;base64,{encoded}"
