"""Preset car photos offered as reference images."""

from pathlib import Path

from pydantic import BaseModel

from colca.models.asset import InlineAsset
from colca.services.exceptions import InvalidInputError


class GalleryItem(BaseModel):
    """A preset car: thumbnail for pickers, full-size source for generation."""

    name: str
    thumbnail: str
    source: str


GALLERY = (
    GalleryItem(name="Blue", thumbnail="Blue-07.png", source="Blue.png"),
    GalleryItem(name="Red", thumbnail="Red-07.jpeg", source="Red.jpeg"),
    GalleryItem(name="White", thumbnail="White-07.jpg", source="White.png"),
)


def mime_type_for_filename(filename: str) -> str:
    """Mime type from a filename extension (png when unknown)."""
    extension = Path(filename).suffix.lstrip(".").lower()
    if extension in ("jpg", "jpeg"):
        return "image/jpeg"
    if extension == "webp":
        return "image/webp"
    return "image/png"


def find_item(name: str) -> GalleryItem:
    """Look up a preset by name (case-insensitive).

    Raises:
        InvalidInputError: Unknown name
    """
    for item in GALLERY:
        if item.name.lower() == name.lower():
            return item
    known = ", ".join(item.name for item in GALLERY)
    raise InvalidInputError(f"Unknown car '{name}'. Choose one of: {known}")


def load_file(path: Path) -> InlineAsset:
    """Read an image file from disk.

    Raises:
        InvalidInputError: File does not exist
    """
    if not path.is_file():
        raise InvalidInputError(f"Could not load image file: {path}")
    return InlineAsset(data=path.read_bytes(), mime_type=mime_type_for_filename(path.name))


def load_source(gallery_dir: str | Path, name: str) -> InlineAsset:
    """Load the full-size photo of a preset car.

    Raises:
        InvalidInputError: Unknown name or missing file
    """
    item = find_item(name)
    try:
        return load_file(Path(gallery_dir) / "source" / item.source)
    except InvalidInputError as e:
        raise InvalidInputError("Could not load the selected car image.", detail=str(e)) from e
