"""Style catalog: maps a style key to the prompt sent to the provider.

The catalog is configuration data. The built-in table below merges the
styles of every deployed variant; a deployment can replace it with a JSON
file of ``{"style-key": "prompt"}`` pairs (``PHOTO_RESTYLE_STYLES_FILE``).
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

from photo_restyle.core.exceptions import ConfigurationError, UnknownStyleError, ValidationError
from photo_restyle.core.logging import get_logger
from photo_restyle.core.types import ResolvedPrompt

if TYPE_CHECKING:
    from pathlib import Path

logger = get_logger(__name__)

DEFAULT_STYLES: dict[str, str] = {
    "og-gigachad": (
        "Transform the person in this photo into the classic black-and-white 'gigachad' "
        "portrait: chiselled jawline, strong brow, confident three-quarter profile, dramatic "
        "high-contrast studio lighting and film grain. Keep the person's identity, facial "
        "landmarks, skin tone and hairline recognizable; do not replace the face. Plain dark "
        "background, 1024x1024 composition."
    ),
    "saiyan-bnb": (
        "Apply this to the [character]: high-energy Super Saiyan transformation with vivid "
        "anime style and crisp linework. Subject is centered, three-quarter angle, powerful yet "
        "composed expression. Identity retention: keep the person's identity and features; do "
        "not change ethnicity. Preserve facial geometry and landmarks (eye shape, nose, mouth, "
        "jawline, cheekbones), skin tone, and overall hairstyle/hairline. Allow gravity-defying "
        "spiky hair styling with a golden highlight while keeping the hairline/shape "
        "recognizable; do not obscure the face. Keep the original pose and clothing (enhance "
        "with subtle folds/lighting only). Surround the subject with a bright golden aura, soft "
        "bloom, and subtle lightning arcs; add upward motion lines and a faint upward stock "
        "chart in the background for momentum. Use Binance yellow #F0B90B for aura/lightning "
        "accents; avoid covering the face with effects. Background softly defocused; emphasize "
        "depth and dynamic lighting; 1024x1024 composition. No face replacement, no age/gender "
        "changes, no heavy filters that blur facial details."
    ),
    "purple-laser-eyes": (
        "Add intense glowing purple laser eyes to [CHARACTER], positioned naturally over their "
        "real eyes. The beams should be vibrant neon violet, with radiating light streaks and a "
        "soft glow around them. The rest of the image (lighting, colors, background, facial "
        "features, clothing, etc.) must remain completely unchanged and realistic - only the "
        "laser eyes are modified. Make sure the laser effect feels integrated with the lighting "
        "of the scene and aligned perfectly with the subject's eye direction."
    ),
}


class StyleCatalog(Mapping[str, str]):
    """Immutable mapping from style key to prompt."""

    def __init__(self, styles: Mapping[str, str]) -> None:
        self._styles = MappingProxyType(dict(styles))

    @classmethod
    def load(cls, path: Path | None = None) -> StyleCatalog:
        """
        Load a catalog from a JSON file, or the built-in styles when no path is given.

        Raises:
            ConfigurationError: If the file is unreadable or not a string->string object
        """
        if path is None:
            return cls(DEFAULT_STYLES)

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot load style catalog {path}: {e}") from e

        if not isinstance(data, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in data.items()
        ):
            raise ConfigurationError(f"Style catalog {path} must map style keys to prompt strings")

        logger.info("Loaded %d styles from %s", len(data), path)
        return cls(data)

    def __getitem__(self, key: str) -> str:
        return self._styles[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._styles)

    def __len__(self) -> int:
        return len(self._styles)

    def resolve(
        self,
        style: str | None,
        prompt: str | None = None,
        *,
        allow_raw: bool = True,
    ) -> ResolvedPrompt:
        """
        Pick the prompt for a request.

        Resolution order:
            1. ``style`` is a catalog key -> catalog prompt
            2. ``style`` is non-blank -> ``style`` verbatim as a raw prompt
            3. ``prompt`` is non-blank -> ``prompt``

        Raises:
            ValidationError: No style was supplied and ``prompt`` is missing or blank
            UnknownStyleError: A style was supplied but none of the above applies
        """
        if style and style in self._styles:
            return ResolvedPrompt(text=self._styles[style], source="catalog", style=style)

        if allow_raw and style and style.strip():
            return ResolvedPrompt(text=style, source="raw-style")

        if prompt and prompt.strip():
            return ResolvedPrompt(text=prompt, source="prompt")

        if not style:
            raise ValidationError("Missing image or style/prompt")
        raise UnknownStyleError(style)
