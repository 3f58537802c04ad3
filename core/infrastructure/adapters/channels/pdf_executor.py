"""
PDF Render Executor.

Renders HTML to PDF with a headless Chromium-family browser run as a
subprocess (``--headless --print-to-pdf``).
"""
import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from core.application.interfaces import ChannelContext, ChannelExecutor, ChannelResult
from core.domain.enums import ChannelKind
from core.domain.exceptions import ValidationError
from core.settings.modules.channels_settings import PdfSettings

from .payload import channel_block

logger = logging.getLogger(__name__)

# Width x height in millimetres, portrait
PAGE_PRESETS: Dict[str, Tuple[float, float]] = {
    "A3": (297.0, 420.0),
    "A4": (210.0, 297.0),
    "LETTER": (215.9, 279.4),
    "LEGAL": (215.9, 355.6),
    "TABLOID": (279.4, 431.8),
}

DEFAULT_MARGIN_MM = 10.0
MM_PER_INCH = 25.4


def pdf_output_path(output_dir, operation_id: str) -> Path:
    """Where the rendered PDF of ``operation_id`` is written."""
    return Path(output_dir) / f"{operation_id}.pdf"


class PdfRenderExecutor(ChannelExecutor):
    """
    PDF channel.

    Output is written to ``{output_dir}/{operation_id}.pdf``; a retry simply
    overwrites the previous file.

    Metadata (``metadata["pdf"]``):
        html: document to render (required)
        orientation: "portrait" (default) or "landscape"
        page_size: one of A3, A4, LETTER, LEGAL, TABLOID
        custom_page_size: ``{"width", "height"}`` in mm, used without page_size
        margins: ``{"top", "bottom", "left", "right"}`` in mm
        scale: zoom factor, default 1.0
    """

    kind = ChannelKind.PDF

    def __init__(self, settings: PdfSettings):
        """
        Initialize PDF render executor.

        Args:
            settings: Browser path, output directory and default paper size
        """
        self.settings = settings
        self.output_dir = Path(settings.output_dir)
        logger.info(f"PdfRenderExecutor initialized ({settings.browser_path} -> {self.output_dir})")

    def validate(self, metadata: Dict[str, Any]) -> None:
        block = channel_block(metadata, "pdf")
        if not isinstance(block.get("html"), str) or not block["html"].strip():
            raise ValidationError("metadata.pdf.html is required")
        self.page_css(block)

    def output_path(self, operation_id: str) -> Path:
        return pdf_output_path(self.output_dir, operation_id)

    def page_css(self, block: Dict[str, Any]) -> str:
        """@page rule for the requested paper size, orientation and margins."""
        preset = block.get("page_size")
        custom = block.get("custom_page_size")
        if preset:
            if str(preset).upper() not in PAGE_PRESETS:
                raise ValidationError(f"Unknown page_size: {preset}")
            width, height = PAGE_PRESETS[str(preset).upper()]
        elif custom:
            try:
                width, height = float(custom["width"]), float(custom["height"])
            except (KeyError, TypeError, ValueError) as exc:
                raise ValidationError("custom_page_size needs numeric width and height") from exc
        else:
            width = self.settings.default_width * MM_PER_INCH
            height = self.settings.default_height * MM_PER_INCH

        orientation = (block.get("orientation") or "portrait").lower()
        if orientation not in ("portrait", "landscape"):
            raise ValidationError(f"Unknown orientation: {orientation}")
        if orientation == "landscape":
            width, height = height, width

        margins = block.get("margins") or {}
        try:
            top, right, bottom, left = (
                float(margins.get(side, DEFAULT_MARGIN_MM))
                for side in ("top", "right", "bottom", "left")
            )
            scale = float(block.get("scale") or 1.0)
        except (AttributeError, TypeError, ValueError) as exc:
            raise ValidationError("margins and scale must be numeric") from exc
        if scale <= 0:
            raise ValidationError("scale must be positive")

        return (
            f"@page {{ size: {width:g}mm {height:g}mm; "
            f"margin: {top:g}mm {right:g}mm {bottom:g}mm {left:g}mm; }}"
            f" body {{ zoom: {scale:g}; }}"
        )

    def build_document(self, block: Dict[str, Any]) -> str:
        style = f"<style>{self.page_css(block)}</style>"
        html = block["html"]
        if "</head>" in html:
            return html.replace("</head>", f"{style}</head>", 1)
        return f"{style}{html}"

    async def execute(self, ctx: ChannelContext) -> ChannelResult:
        block = channel_block(ctx.metadata, "pdf")
        document = self.build_document(block)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        target = self.output_path(ctx.operation_id)

        with tempfile.TemporaryDirectory(prefix="opflow-pdf-") as workdir:
            source = Path(workdir) / "document.html"
            source.write_text(document, encoding="utf-8")
            rendered = Path(workdir) / "document.pdf"

            error = await self._render(source, rendered)
            if error is not None:
                logger.error(f"PDF render failed for operation {ctx.operation_id}: {error}")
                return ChannelResult.failure(error)

            os.replace(rendered, target)

        logger.info(f"PDF for operation {ctx.operation_id} written to {target}")
        return ChannelResult.success()

    async def _render(self, source: Path, rendered: Path) -> Optional[str]:
        try:
            process = await asyncio.create_subprocess_exec(
                self.settings.browser_path,
                "--headless",
                "--disable-gpu",
                "--no-sandbox",
                "--no-pdf-header-footer",
                f"--print-to-pdf={rendered}",
                source.as_uri(),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as exc:
            return f"Browser not available ({self.settings.browser_path}): {exc}"

        try:
            _, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.settings.timeout_seconds
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            return f"Browser timed out after {self.settings.timeout_seconds}s"

        if process.returncode != 0 or not rendered.exists():
            detail = stderr.decode(errors="replace").strip()[-500:]
            return f"Browser exited with code {process.returncode}: {detail}"
        return None
