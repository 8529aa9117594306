"""
QR code generation service
"""

import io
import qrcode
from PIL import Image, ImageDraw, ImageFont

from app.core.config import settings

CARD_LINE_HEIGHT = 18
CARD_PADDING = 20

class QRService:
    """Share links, QR codes and printable share cards for the guest page"""

    @staticmethod
    def get_share_url(share_code: str) -> str:
        return f"{settings.BASE_URL}/e/{share_code}"

    @staticmethod
    def generate_event_qr(share_code: str, format: str = 'PNG') -> bytes:
        """Generate QR code for the event's guest page"""
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(QRService.get_share_url(share_code))
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format=format)

        return buffer.getvalue()

    @staticmethod
    def generate_share_card(share_code: str, title: str, subtitle: str = "") -> bytes:
        """QR code with the event name printed underneath, sized for table cards"""
        qr_img = Image.open(io.BytesIO(QRService.generate_event_qr(share_code))).convert("RGB")
        font = ImageFont.load_default()
        # The default bitmap font only covers latin-1
        lines = [line.encode("latin-1", "replace").decode("latin-1") for line in (title, subtitle) if line]

        card = Image.new("RGB", (qr_img.width, qr_img.height + CARD_LINE_HEIGHT * len(lines) + CARD_PADDING), "white")
        card.paste(qr_img, (0, 0))

        draw = ImageDraw.Draw(card)
        y = qr_img.height
        for line in lines:
            width = draw.textlength(line, font=font)
            draw.text(((card.width - width) / 2, y), line, fill="black", font=font)
            y += CARD_LINE_HEIGHT

        buffer = io.BytesIO()
        card.save(buffer, format="PNG")
        return buffer.getvalue()
