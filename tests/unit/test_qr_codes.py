"""
Tests for RSVP badge QR codes
"""
import base64
import json

from campushub.services.RsvpQRCodeGenerator import RsvpQRCodeGenerator

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class TestRsvpQRCodeGenerator:

    def test_payload_carries_code_and_event(self):
        payload = json.loads(RsvpQRCodeGenerator.payload("RSVP-7KQ2-M9XD", "event-1"))
        assert payload == {"rsvp_number": "RSVP-7KQ2-M9XD", "event_id": "event-1"}

    def test_png_bytes(self):
        png = RsvpQRCodeGenerator().generate_png("RSVP-7KQ2-M9XD", "event-1")
        assert png.startswith(PNG_SIGNATURE)

    def test_data_uri(self):
        uri = RsvpQRCodeGenerator().generate_qr_code_data_uri("RSVP-7KQ2-M9XD", "event-1")
        assert uri.startswith("data:image/png;base64,")
        assert base64.b64decode(uri.split(",", 1)[1]).startswith(PNG_SIGNATURE)

    def test_image_size_follows_box_size(self):
        generator = RsvpQRCodeGenerator()
        small = generator.generate_qr_image("RSVP-7KQ2-M9XD", "event-1", box_size=2)
        large = generator.generate_qr_image("RSVP-7KQ2-M9XD", "event-1", box_size=8)
        assert large.size[0] == small.size[0] * 4
