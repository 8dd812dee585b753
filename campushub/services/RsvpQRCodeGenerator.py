"""
RSVP QR Code Generator
Renders the badge QR code that door staff scan at check-in.
"""

import base64
import json
from io import BytesIO
from typing import Optional

import qrcode
from PIL import Image


class RsvpQRCodeGenerator:
    """Generates QR codes encoding an RSVP number and its event."""

    def __init__(
        self,
        default_box_size: int = 10,
        default_border: int = 2,
        default_fill_color: str = "#0A2463",
        default_back_color: str = "white",
    ):
        self.default_box_size = default_box_size
        self.default_border = default_border
        self.default_fill_color = default_fill_color
        self.default_back_color = default_back_color

    @staticmethod
    def payload(rsvp_number: str, event_id: str) -> str:
        """Compact JSON the scanner app posts back to /rsvp/scan."""
        return json.dumps({"rsvp_number": rsvp_number, "event_id": event_id}, separators=(",", ":"))

    def generate_qr_image(
        self,
        rsvp_number: str,
        event_id: str,
        box_size: Optional[int] = None,
        border: Optional[int] = None,
        fill_color: Optional[str] = None,
        back_color: Optional[str] = None,
    ) -> Image.Image:
        """
        Generate the QR code image for one RSVP.

        Args:
            rsvp_number: Confirmation code of the RSVP
            event_id: Event the RSVP belongs to
            box_size: Size of each QR code box
            border: Border size in boxes
            fill_color: QR code color
            back_color: Background color

        Returns:
            PIL Image object of the QR code
        """
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=box_size or self.default_box_size,
            border=border if border is not None else self.default_border,
        )
        qr.add_data(self.payload(rsvp_number, event_id))
        qr.make(fit=True)

        return qr.make_image(
            fill_color=fill_color or self.default_fill_color,
            back_color=back_color or self.default_back_color,
        ).convert("RGB")

    def generate_png(self, rsvp_number: str, event_id: str, **kwargs) -> bytes:
        img = self.generate_qr_image(rsvp_number, event_id, **kwargs)
        buffered = BytesIO()
        img.save(buffered, format="PNG")
        return buffered.getvalue()

    def generate_qr_code_base64(self, rsvp_number: str, event_id: str, **kwargs) -> str:
        return base64.b64encode(self.generate_png(rsvp_number, event_id, **kwargs)).decode()

    def generate_qr_code_data_uri(self, rsvp_number: str, event_id: str, **kwargs) -> str:
        """Data URI (data:image/png;base64,...) for direct use in HTML."""
        return f"data:image/png;base64,{self.generate_qr_code_base64(rsvp_number, event_id, **kwargs)}"
