"""Wine list extraction from photographed or scanned menus."""

import base64
import json
import logging
import re
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from wine_value.config import DEFAULT_MODEL
from wine_value.core.errors import DocumentParseError, UnsupportedFileTypeError
from wine_value.core.schema import ParseResult, WineRecord
from wine_value.services.ai.client import extract_json_object
from wine_value.services.ai.prompts import DOCUMENT_PARSE_PROMPT

logger = logging.getLogger(__name__)

IMAGE_MEDIA_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
}
PDF_MEDIA_TYPE = "application/pdf"
SUPPORTED_EXTENSIONS = (*IMAGE_MEDIA_TYPES, ".pdf")

MAX_TOKENS_STOP = "max_tokens"

_CURRENCY_PATTERN = re.compile(r'"currency"\s*:\s*"(\w+)"')

# Model answer keys mapped to WineRecord fields
WINE_FIELD_KEYS = {
    "name": ("name",),
    "producer": ("producer",),
    "vintage": ("vintage",),
    "region": ("region",),
    "grape_variety": ("grapeVariety", "grape_variety", "grape"),
    "menu_price": ("restaurantPrice", "menu_price", "price"),
    "raw_text": ("rawText", "raw_text"),
    "extraction_confidence": ("confidence", "extraction_confidence"),
}


def build_content_blocks(data: bytes, extension: str) -> list[dict[str, Any]]:
    """
    Build the Messages API content for a wine list file.

    Args:
        data: Raw file contents.
        extension: Lower-case file extension including the dot.

    Returns:
        Document or image block followed by the extraction prompt.

    Raises:
        UnsupportedFileTypeError: If the extension is not an image or PDF.
    """
    encoded = base64.standard_b64encode(data).decode("ascii")
    if extension == ".pdf":
        file_block = {
            "type": "document",
            "source": {"type": "base64", "media_type": PDF_MEDIA_TYPE, "data": encoded},
        }
    elif extension in IMAGE_MEDIA_TYPES:
        file_block = {
            "type": "image",
            "source": {"type": "base64", "media_type": IMAGE_MEDIA_TYPES[extension], "data": encoded},
        }
    else:
        raise UnsupportedFileTypeError(extension)
    return [file_block, {"type": "text", "text": DOCUMENT_PARSE_PROMPT}]


def salvage_truncated_json(text: str) -> dict[str, Any] | None:
    """
    Recover every complete wine object from a cut-off response.

    Scans the ``wines`` array for balanced ``{...}`` spans, skipping braces
    inside JSON strings, and parses each one on its own.

    Args:
        text: The raw model output.

    Returns:
        ``{"currency": ..., "wines": [...]}`` or None if nothing was salvaged.
    """
    wines_at = text.find('"wines"')
    if wines_at == -1:
        return None
    array_start = text.find("[", wines_at)
    if array_start == -1:
        return None

    currency_match = _CURRENCY_PATTERN.search(text)
    currency = currency_match.group(1) if currency_match else "USD"

    wines: list[Any] = []
    depth = 0
    obj_start = -1
    in_string = False
    escaped = False
    for i in range(array_start + 1, len(text)):
        char = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            if depth == 0:
                obj_start = i
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                try:
                    wines.append(json.loads(text[obj_start:i + 1]))
                except json.JSONDecodeError:
                    pass  # malformed object, keep scanning
        elif char == "]" and depth == 0:
            break

    if not wines:
        return None
    logger.info(f"Salvaged {len(wines)} wines from truncated response")
    return {"currency": currency, "wines": wines}


def wine_from_item(item: Any) -> WineRecord | None:
    """
    Convert one extracted wine object into a WineRecord.

    Returns:
        The record, or None (with a warning) when the object is invalid.
    """
    if not isinstance(item, dict):
        logger.warning(f"Skipping non-object wine entry: {item!r}")
        return None

    values: dict[str, Any] = {}
    for field_name, keys in WINE_FIELD_KEYS.items():
        for key in keys:
            if key in item:
                values[field_name] = item[key]
                break

    try:
        return WineRecord.model_validate(values)
    except ValidationError as e:
        logger.warning(f"Skipping invalid wine '{values.get('name', '?')}': {e.error_count()} errors")
        return None


def build_parse_result(text_blocks: list[str], stop_reason: str | None) -> ParseResult:
    """
    Turn the model's text output into a ParseResult.

    Args:
        text_blocks: Text blocks of the response.
        stop_reason: The response stop reason.

    Returns:
        ParseResult; ``truncated`` is set when wines were salvaged.

    Raises:
        DocumentParseError: If no wine list can be recovered.
    """
    all_text = "\n".join(text_blocks)
    parsed = extract_json_object(text_blocks)
    truncated = False

    if parsed is None or "wines" not in parsed:
        if stop_reason == MAX_TOKENS_STOP:
            logger.warning("Parse response was truncated (max_tokens), salvaging partial wines")
        parsed = salvage_truncated_json(all_text)
        truncated = True

    if parsed is None:
        raise DocumentParseError(
            f'Could not parse wine list. Model responded: "{all_text[:100]}..."'
        )

    items = parsed.get("wines")
    if not isinstance(items, list):
        raise DocumentParseError("Parse response has no wines array")

    wines = [wine for wine in (wine_from_item(item) for item in items) if wine is not None]
    return ParseResult(currency=parsed.get("currency"), wines=wines, truncated=truncated)


class DocumentParser:
    """Extract wines and the menu currency from an image or PDF with Claude."""

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        max_tokens: int = 16384,
        timeout: float = 300.0,
        client: Any = None,
    ):
        """
        Initialize the document parser.

        Args:
            api_key: Anthropic API key.
            model: Model name (defaults to claude-sonnet-4-20250514).
            max_tokens: Output token budget; long lists may hit it.
            timeout: Request timeout in seconds.
            client: Optional pre-built AsyncAnthropic client (used in tests).
        """
        if client is None:
            try:
                import anthropic
            except ImportError:
                raise ImportError(
                    "anthropic package is required. Install with: pip install anthropic"
                )
            client = anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout)

        self.client = client
        self.model = model or DEFAULT_MODEL
        self.max_tokens = max_tokens

    async def parse_bytes(self, data: bytes, extension: str) -> ParseResult:
        """
        Parse wine list contents.

        Args:
            data: Raw file contents.
            extension: File extension including the dot.

        Returns:
            ParseResult with the currency and the valid wines.

        Raises:
            UnsupportedFileTypeError: For extensions other than images and PDF.
            DocumentParseError: If the model call fails or returns no wine list.
        """
        content = build_content_blocks(data, extension.lower())

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": content}],
            )
        except Exception as e:
            logger.error(f"Anthropic API error while parsing document: {e}")
            raise DocumentParseError(f"API error: {str(e)}") from e

        text_blocks = [
            block.text for block in response.content if getattr(block, "type", None) == "text"
        ]
        logger.info(
            f"Parse response: stop_reason={response.stop_reason}, text blocks={len(text_blocks)}"
        )
        if not text_blocks:
            raise DocumentParseError("No text response from the model")

        result = build_parse_result(text_blocks, response.stop_reason)
        logger.info(f"Parsed {len(result.wines)} wines ({result.currency})")
        return result

    async def parse_document(self, file_path: Path | str) -> ParseResult:
        """Parse a wine list file from disk."""
        path = Path(file_path)
        extension = path.suffix.lower()
        if extension not in SUPPORTED_EXTENSIONS:
            raise UnsupportedFileTypeError(extension)
        return await self.parse_bytes(path.read_bytes(), extension)
