from __future__ import annotations

import io

import qrcode


def qr_png(data: str) -> bytes:
    """Render ``data`` as a PNG QR code."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=2,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def registration_qr_png(token: str) -> bytes:
    return qr_png(f"EVENT-REG:{token}")
