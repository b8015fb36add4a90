"""InlineAsset - self-contained image payload (bytes + mime type)."""

import base64
import binascii

from pydantic import BaseModel, ConfigDict

# Output encodings accepted by the FLUX API and the mime type each one renders as
OUTPUT_FORMAT_MIME_TYPES = {
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}


def mime_type_for_format(output_format: str | None) -> str:
    """Map an output format token to its mime type (jpeg when unknown)."""
    return OUTPUT_FORMAT_MIME_TYPES.get((output_format or "jpeg").lower(), "image/jpeg")


class InlineAsset(BaseModel):
    """Image that needs no further network fetch to render.

    Immutable once created.
    """

    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str = "image/png"

    @property
    def base64(self) -> str:
        """Payload as base64 text without a ``data:`` prefix."""
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"

    @classmethod
    def from_base64(cls, payload: str, mime_type: str | None = None) -> "InlineAsset":
        """Build from base64 text.

        Raises:
            ValueError: If payload is not valid base64
        """
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid base64 image payload: {e}") from e
        return cls(data=data, mime_type=mime_type or "image/png")

    @classmethod
    def from_data_url(cls, data_url: str) -> "InlineAsset":
        """Parse a ``data:<mime>;base64,<payload>`` URL.

        Raises:
            ValueError: If the string is not a base64 data URL
        """
        if not data_url.startswith("data:") or ";base64," not in data_url:
            raise ValueError("Expected a base64 data URL")
        header, _, payload = data_url.partition(";base64,")
        mime_type = header[len("data:") :] or "image/png"
        return cls.from_base64(payload, mime_type)
