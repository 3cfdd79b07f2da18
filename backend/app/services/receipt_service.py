"""
AGE-MATE Tracking Backend — Receipt Renderer
=============================================

What:  Turns a shipment record into a PDF receipt, and optionally a JPEG.
Why:   Customers download receipts from the tracking page; the layout is
       consumed by downstream tooling, so row order and labels are fixed.
How:   Two stages:
       1. build_layout(): pure, deterministic text layout (positions, fonts,
          page breaks) computed from the record
       2. render(): paints the layout onto PDF pages with PyMuPDF
       Rasterization is delegated to an injected Rasterizer.

Page Layout (A4, 50pt margin, top-to-bottom flow):
    ┌──────────────────────────────────────────────┐
    │ AGE-MATE Global Logistics            (20pt)  │
    │                                              │
    │ Tracking Receipt: TRK1               (12pt)  │
    │ Status: In Transit                           │
    │ Origin: Shanghai  ->  Destination: Lagos     │
    │                                              │
    │ Company: AGE-MATE Global Logistics   (10pt)  │
    │ Address: ...                                 │
    │ Contact: ...                                 │
    │                                              │
    │ User Name         <value>                    │
    │ Loading Date      <value>                    │
    │ ...  (bold label column, 140pt wide)         │
    └──────────────────────────────────────────────┘

Long values wrap inside the value column; content that runs past the bottom
margin continues on a new page.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import fitz  # PyMuPDF

from app.exceptions import RenderError
from app.services.rasterizer_base import Rasterizer

logger = logging.getLogger(__name__)

# ── Page geometry (PDF points) ────────────────────────────────────────────
PAGE_WIDTH = 595.28   # A4
PAGE_HEIGHT = 841.89
MARGIN = 50.0
LABEL_WIDTH = 140.0

LINE_SPACING = 1.2    # line height as a multiple of the font size
ASCENT = 0.8          # baseline offset from the top of a line

# ── Fonts (PDF base-14 names as understood by PyMuPDF) ─────────────────────
FONT_REGULAR = "helv"
FONT_BOLD = "hebo"

HEADING_SIZE = 20.0
TITLE_SIZE = 12.0
BODY_SIZE = 10.0

# ── Fixed receipt content ─────────────────────────────────────────────────
COMPANY_NAME = "AGE-MATE Global Logistics"
COMPANY_ADDRESS = "Address: 123 Logistics Way, Shanghai / 45 Lagos Ave, Lagos"
COMPANY_CONTACT = "Contact: contact@agemateglobal.com | +1-555-0100"

# Order and labels are part of the receipt format; do not reorder.
RECEIPT_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("User Name", "userName"),
    ("Loading Date", "loadingDate"),
    ("Phone Number", "phone"),
    ("Tracking Number", "trackingNumber"),
    ("Goods Description", "goodsDescription"),
    ("Quantity", "quantity"),
    ("CBM", "cbm"),
    ("Rate per CBM", "ratePerCbm"),
    ("Total Amount", "totalAmount"),
    ("Container Number", "containerNumber"),
)

Measure = Callable[[str, str, float], float]


def measure_text(text: str, font: str, size: float) -> float:
    return fitz.get_text_length(text, fontname=font, fontsize=size)


def display_value(value: Any) -> str:
    """
    String form of a record value as printed on the receipt.

    None becomes "", booleans print lowercase, and whole floats drop their
    trailing ".0" (12.0 → "12").
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass(frozen=True)
class TextRun:
    """A single piece of text placed at a baseline position."""

    text: str
    x: float
    y: float
    font: str
    size: float


@dataclass
class ReceiptLayout:
    """Positioned text runs, grouped by page."""

    width: float = PAGE_WIDTH
    height: float = PAGE_HEIGHT
    pages: List[List[TextRun]] = field(default_factory=lambda: [[]])

    def text_lines(self) -> List[str]:
        """
        Visible text in reading order, one entry per printed line.

        Runs sharing a baseline on the same page are joined with a single
        space (label + value).
        """
        lines: List[str] = []
        for page in self.pages:
            current_y: Optional[float] = None
            for run in page:
                if run.y == current_y:
                    lines[-1] = f"{lines[-1]} {run.text}"
                else:
                    lines.append(run.text)
                    current_y = run.y
        return lines


class _Flow:
    """Top-to-bottom text cursor that starts a new page when one fills up."""

    def __init__(self, layout: ReceiptLayout, measure: Measure):
        self.layout = layout
        self.measure = measure
        self.y = MARGIN
        self.size = TITLE_SIZE

    @property
    def content_width(self) -> float:
        return self.layout.width - 2 * MARGIN

    def _line_height(self) -> float:
        return self.size * LINE_SPACING

    def _reserve_line(self) -> float:
        """Return the baseline for the next line, breaking the page if needed."""
        if self.y + self._line_height() > self.layout.height - MARGIN:
            self.layout.pages.append([])
            self.y = MARGIN
        baseline = self.y + self.size * ASCENT
        self.y += self._line_height()
        return baseline

    def wrap(self, text: str, font: str, width: float) -> List[str]:
        """Greedy word wrap; words wider than the column are split by character."""
        lines: List[str] = []
        for paragraph in text.splitlines() or [""]:
            current = ""
            for word in paragraph.split(" "):
                candidate = f"{current} {word}" if current else word
                if self.measure(candidate, font, self.size) <= width:
                    current = candidate
                    continue
                if current:
                    lines.append(current)
                while len(word) > 1 and self.measure(word, font, self.size) > width:
                    cut = len(word) - 1
                    while cut > 1 and self.measure(word[:cut], font, self.size) > width:
                        cut -= 1
                    lines.append(word[:cut])
                    word = word[cut:]
                current = word
            lines.append(current)
        return lines

    def text(self, text: str, font: str = FONT_REGULAR, size: Optional[float] = None) -> None:
        if size is not None:
            self.size = size
        for line in self.wrap(text, font, self.content_width):
            baseline = self._reserve_line()
            if line:
                self.layout.pages[-1].append(TextRun(line, MARGIN, baseline, font, self.size))

    def blank(self) -> None:
        self.y += self._line_height()

    def row(self, label: str, value: str) -> None:
        value_x = MARGIN + LABEL_WIDTH
        value_lines = self.wrap(value, FONT_REGULAR, self.content_width - LABEL_WIDTH)
        for index, line in enumerate(value_lines):
            baseline = self._reserve_line()
            page = self.layout.pages[-1]
            if index == 0:
                page.append(TextRun(label, MARGIN, baseline, FONT_BOLD, self.size))
            if line:
                page.append(TextRun(line, value_x, baseline, FONT_REGULAR, self.size))


def build_layout(record: Dict[str, Any], measure: Measure = measure_text) -> ReceiptLayout:
    """
    Compute the receipt layout for a shipment record.

    Deterministic: identical records produce identical layouts. Absent
    fields print as empty strings, never as "None".
    """
    def value(name: str) -> str:
        return display_value(record.get(name))

    layout = ReceiptLayout()
    flow = _Flow(layout, measure)

    flow.text(COMPANY_NAME, size=HEADING_SIZE)
    flow.blank()
    flow.text(f"Tracking Receipt: {value('trackingNumber')}", size=TITLE_SIZE)
    flow.text(f"Status: {value('status')}")
    flow.text(f"Origin: {value('origin')}  ->  Destination: {value('destination')}")
    flow.blank()

    flow.text(f"Company: {COMPANY_NAME}", size=BODY_SIZE)
    flow.text(COMPANY_ADDRESS)
    flow.text(COMPANY_CONTACT)
    flow.blank()

    for label, name in RECEIPT_FIELDS:
        flow.row(label, value(name))

    return layout


def receipt_filename(record: Dict[str, Any], extension: str) -> str:
    return f"{display_value(record.get('trackingNumber'))}-receipt.{extension}"


class PyMuPDFRasterizer(Rasterizer):
    """Renders the first PDF page to JPEG with PyMuPDF."""

    media_type = "image/jpeg"
    extension = "jpg"

    def __init__(self, dpi: int = 150, quality: int = 85):
        self.dpi = dpi
        self.quality = quality

    def rasterize(self, document: bytes) -> bytes:
        with fitz.open(stream=document, filetype="pdf") as doc:
            if doc.page_count == 0:
                raise RenderError(message="Receipt document has no pages")
            page = doc.load_page(0)
            zoom = self.dpi / 72
            pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
            return pix.tobytes("jpeg", jpg_quality=self.quality)


class ReceiptRenderer:
    """
    Produces receipt documents and images for shipment records.

    Both methods are synchronous and CPU-bound; routes call them through
    run_in_threadpool so the event loop keeps serving other requests.
    """

    media_type = "application/pdf"
    extension = "pdf"

    def __init__(self, rasterizer: Rasterizer):
        self.rasterizer = rasterizer

    def render(self, record: Dict[str, Any]) -> bytes:
        """
        Render a shipment record to PDF bytes.

        Raises:
            RenderError if the PDF backend fails.
        """
        tracking_number = display_value(record.get("trackingNumber"))
        try:
            layout = build_layout(record)
            doc = fitz.open()
            try:
                for runs in layout.pages:
                    page = doc.new_page(width=layout.width, height=layout.height)
                    for run in runs:
                        page.insert_text(
                            (run.x, run.y),
                            run.text,
                            fontname=run.font,
                            fontsize=run.size,
                        )
                doc.set_metadata({
                    "title": f"Tracking Receipt {tracking_number}",
                    "author": COMPANY_NAME,
                    "creator": COMPANY_NAME,
                    "producer": COMPANY_NAME,
                })
                content = doc.tobytes(deflate=True)
            finally:
                doc.close()
        except Exception as e:
            logger.error("PDF rendering failed for %s: %s", tracking_number, e, exc_info=True)
            raise RenderError(
                message="Error generating PDF",
                context={"trackingNumber": tracking_number, "error": str(e)},
            )

        logger.info("Rendered PDF receipt for %s (%d bytes)", tracking_number, len(content))
        return content

    def rasterize(self, document: bytes) -> bytes:
        """
        Convert PDF bytes to image bytes through the injected rasterizer.

        Raises:
            RenderError if rasterization fails or yields no data.
        """
        try:
            image = self.rasterizer.rasterize(document)
        except RenderError:
            raise
        except Exception as e:
            logger.error("Rasterization failed: %s", e, exc_info=True)
            raise RenderError(message="Error generating JPEG", context={"error": str(e)})
        if not image:
            raise RenderError(message="Error generating JPEG", context={"error": "empty image"})
        return image

    def render_image(self, record: Dict[str, Any]) -> bytes:
        return self.rasterize(self.render(record))
