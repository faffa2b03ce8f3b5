from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from io import BytesIO
from pathlib import Path
from typing import Mapping, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from kzinvoice.utils.number_to_words import amount_to_words

logger = logging.getLogger(__name__)

H_MARGIN = 15 * mm
V_MARGIN = 20 * mm
PRIMARY_FONT = "DejaVuSans"
FALLBACK_FONT = "Helvetica"
HEADER_BG = colors.HexColor("#f5f5f5")
GRID_COLOR = colors.HexColor("#999999")
TEXT_COLOR = colors.HexColor("#222222")
POSITIONS = ("left", "center", "right")

FONT_CANDIDATES = [
    (PRIMARY_FONT, ["DejaVuSans.ttf", "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf", "/usr/share/fonts/dejavu/DejaVuSans.ttf", "/Library/Fonts/Arial.ttf", "C:/Windows/Fonts/arial.ttf"]),
    (PRIMARY_FONT + "-Bold", ["DejaVuSans-Bold.ttf", "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf", "/Library/Fonts/Arial Bold.ttf", "C:/Windows/Fonts/arialbd.ttf"]),
]


def format_date_ru(value: date | datetime | str | None) -> str:
    """Return a DD.MM.YYYY string (or an empty string)."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.strftime("%d.%m.%Y")
    try:
        return datetime.fromisoformat(str(value)).strftime("%d.%m.%Y")
    except ValueError:
        return str(value)


def format_number_ru(value, places: int = 2) -> str:
    """Format number with Russian separators (comma for decimals, space for thousands)."""
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return ""
    formatted = format(number, f",.{places}f")
    return formatted.replace(",", " ").replace(".", ",")


def _text(value) -> str:
    """Escape user-supplied text for reportlab paragraph markup."""
    return escape(str(value)) if value is not None else ""


def _ensure_style(styles, name: str, **kwargs) -> ParagraphStyle:
    """Add a style if missing and return it."""
    existing = getattr(styles, "byName", {}).get(name)
    if existing:
        return existing
    style = ParagraphStyle(name=name, **kwargs)
    styles.add(style)
    return style


def _register_fonts(font_path: str | None = None) -> tuple[str, str]:
    """Register a Cyrillic-capable TTF if available; return (body_font, bold_font)."""
    registered = set(pdfmetrics.getRegisteredFontNames())
    if PRIMARY_FONT not in registered:
        candidates = list(FONT_CANDIDATES)
        if font_path:
            candidates[0] = (PRIMARY_FONT, [font_path] + candidates[0][1])
        for name, paths in candidates:
            for p in paths:
                path_obj = Path(p)
                if not path_obj.exists():
                    continue
                try:
                    pdfmetrics.registerFont(TTFont(name, str(path_obj)))
                    break
                except Exception:
                    logger.debug("Could not register font %s from %s", name, path_obj)
                    continue
        registered = set(pdfmetrics.getRegisteredFontNames())

    body_font = PRIMARY_FONT if PRIMARY_FONT in registered else FALLBACK_FONT
    if body_font == FALLBACK_FONT:
        logger.debug("No Cyrillic font found, falling back to %s", FALLBACK_FONT)
    bold_font = PRIMARY_FONT + "-Bold" if PRIMARY_FONT + "-Bold" in registered else (
        FALLBACK_FONT + "-Bold" if body_font == FALLBACK_FONT else body_font
    )
    return body_font, bold_font


def _bank_table(supplier: Mapping, body_style: ParagraphStyle, bold_font: str, width: float) -> Table:
    table = Table(
        [
            [
                Paragraph(f'<font name="{bold_font}">Бенефициар:</font><br/>{_text(supplier.get("name"))}<br/>БИН: {_text(supplier.get("bin"))}', body_style),
                Paragraph(f'<font name="{bold_font}">ИИК</font><br/>{_text(supplier.get("iik"))}', body_style),
                Paragraph(f'<font name="{bold_font}">Кбе</font><br/>{_text(supplier.get("kbe"))}', body_style),
            ],
            [
                Paragraph(f'Банк бенефициара:<br/>{_text(supplier.get("bank"))}', body_style),
                Paragraph(f'<font name="{bold_font}">БИК</font><br/>{_text(supplier.get("bik"))}', body_style),
                Paragraph(f'<font name="{bold_font}">Код назначения платежа</font><br/>{_text(supplier.get("payment_code"))}', body_style),
            ],
        ],
        colWidths=[width * 0.5, width * 0.3, width * 0.2],
        hAlign="LEFT",
    )
    table.setStyle(
        TableStyle(
            [
                ("GRID", (0, 0), (-1, -1), 0.5, GRID_COLOR),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("TEXTCOLOR", (0, 0), (-1, -1), TEXT_COLOR),
            ]
        )
    )
    return table


def _party_paragraph(title: str, info: Mapping, body_style: ParagraphStyle, bold_font: str) -> Paragraph:
    details = ", ".join(
        part
        for part in (
            f"БИН / ИИН {_text(info['bin'])}" if info.get("bin") else "",
            _text(info.get("name")),
            _text(info.get("address")),
        )
        if part
    )
    return Paragraph(f'{title}: <font name="{bold_font}">{details}</font>', body_style)


def _build_items_table(
    items: Sequence[Mapping], total, body_style: ParagraphStyle, right_style: ParagraphStyle, bold_font: str, width: float
) -> Table:
    header = ["№", "Наименование", "Кол-во", "Ед.", "Цена", "Сумма"]
    data: list[list] = [[Paragraph(f'<font name="{bold_font}">{title}</font>', body_style) for title in header]]

    for index, item in enumerate(items or [], start=1):
        data.append(
            [
                Paragraph(str(index), body_style),
                Paragraph(_text(item.get("name")), body_style),
                Paragraph(format_number_ru(item.get("quantity")), right_style),
                Paragraph(_text(item.get("unit")), body_style),
                Paragraph(format_number_ru(item.get("price")), right_style),
                Paragraph(format_number_ru(item.get("total")), right_style),
            ]
        )

    data.append(
        ["", "", "", "", Paragraph(f'<font name="{bold_font}">Итого:</font>', right_style), Paragraph(f'<font name="{bold_font}">{format_number_ru(total)}</font>', right_style)]
    )

    col_widths = [width * 0.06, width * 0.44, width * 0.1, width * 0.08, width * 0.16, width * 0.16]
    table = Table(data, colWidths=col_widths, hAlign="LEFT")
    table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, -1), body_style.fontName),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("TEXTCOLOR", (0, 0), (-1, -1), TEXT_COLOR),
                ("BACKGROUND", (0, 0), (-1, 0), HEADER_BG),
                ("GRID", (0, 0), (-1, -2), 0.4, GRID_COLOR),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
                ("TOPPADDING", (0, 0), (-1, -1), 4),
            ]
        )
    )
    return table


def _load_image(path: str | None, width: float, height: float):
    if not path:
        return None
    path_obj = Path(path)
    if not path_obj.is_file():
        logger.debug("Image %s not found, skipping", path_obj)
        return None
    return Image(str(path_obj), width=width, height=height)


def _signature_section(
    body_style: ParagraphStyle, width: float, signature: Mapping | None
) -> list:
    """Executor line plus an optional row with stamp and signature images."""
    flowables: list = [Paragraph("Исполнитель: _________________________________ /бухгалтер/", body_style)]
    if not signature:
        return flowables

    cells: dict[str, list] = {position: [] for position in POSITIONS}
    signature_image = _load_image(
        signature.get("signature_path"),
        int(signature.get("signature_width") or 200) * 0.5,
        int(signature.get("signature_height") or 70) * 0.5,
    )
    stamp_size = int(signature.get("stamp_size") or 100) * 0.8
    stamp_image = _load_image(signature.get("stamp_path"), stamp_size, stamp_size)

    if stamp_image is not None:
        cells[signature.get("stamp_position") or "left"].append(stamp_image)
    if signature_image is not None:
        cells[signature.get("signature_position") or "right"].append(signature_image)

    if not any(cells.values()):
        return flowables

    images_table = Table(
        [[cells[position] or "" for position in POSITIONS]],
        colWidths=[width / 3] * 3,
        hAlign="LEFT",
    )
    images_table.setStyle(
        TableStyle(
            [
                ("ALIGN", (0, 0), (0, 0), "LEFT"),
                ("ALIGN", (1, 0), (1, 0), "CENTER"),
                ("ALIGN", (2, 0), (2, 0), "RIGHT"),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ]
        )
    )
    flowables.append(Spacer(1, 2 * mm))
    flowables.append(images_table)
    return flowables


def generate_invoice_pdf(invoice_data, output_path=None, font_path=None):
    """
    Generate PDF invoice from invoice data

    Args:
        invoice_data: dict with structure:
            {
                'invoice_number': str,
                'invoice_date': date,
                'contract': str,
                'supplier': {name, bin, address, bank, bik, iik, kbe, payment_code},
                'buyer': {name, bin, address},
                'items': [
                    {name, quantity, unit, price, total}
                ],
                'total_amount': decimal,
                'total_amount_words': str,
                'signature': {signature_path, signature_width, signature_height,
                              signature_position, stamp_path, stamp_size,
                              stamp_position} or None
            }
        output_path: str, optional path to save PDF
        font_path: str, optional TTF font with Cyrillic glyphs

    Returns:
        bytes: PDF file content if output_path is None
        or
        str: file path if output_path is provided
    """

    buffer = BytesIO()
    target = buffer if output_path is None else output_path

    doc = SimpleDocTemplate(
        target,
        pagesize=A4,
        leftMargin=H_MARGIN,
        rightMargin=H_MARGIN,
        topMargin=V_MARGIN,
        bottomMargin=V_MARGIN,
    )

    body_font, bold_font = _register_fonts(font_path)

    styles = getSampleStyleSheet()
    body_style = _ensure_style(
        styles,
        "InvoiceBody",
        fontName=body_font,
        fontSize=9,
        leading=12,
        alignment=TA_LEFT,
        textColor=TEXT_COLOR,
    )
    right_style = _ensure_style(styles, "InvoiceRight", parent=body_style, alignment=TA_RIGHT)
    title_style = _ensure_style(
        styles,
        "InvoiceTitle",
        parent=body_style,
        fontName=bold_font,
        fontSize=14,
        leading=18,
        alignment=TA_CENTER,
    )

    supplier = invoice_data.get("supplier") or {}
    buyer = invoice_data.get("buyer") or {}
    items = invoice_data.get("items") or []
    total = invoice_data.get("total_amount", 0)
    total_words = invoice_data.get("total_amount_words") or amount_to_words(total or 0)

    story: list = [
        _bank_table(supplier, body_style, bold_font, doc.width),
        Spacer(1, 6 * mm),
        Paragraph(
            f"Счет на оплату № {_text(invoice_data.get('invoice_number'))} от {_text(format_date_ru(invoice_data.get('invoice_date')))}",
            title_style,
        ),
        Spacer(1, 6 * mm),
        _party_paragraph("Поставщик", supplier, body_style, bold_font),
        Spacer(1, 2 * mm),
        _party_paragraph("Покупатель", buyer, body_style, bold_font),
        Spacer(1, 2 * mm),
        Paragraph(f"Договор: {_text(invoice_data.get('contract') or 'Без договора')}", body_style),
        Spacer(1, 6 * mm),
        _build_items_table(items, total, body_style, right_style, bold_font, doc.width),
        Spacer(1, 4 * mm),
        Paragraph(f"Всего наименований {len(items)} на сумму {format_number_ru(total)} KZT", body_style),
        Paragraph(f'<font name="{bold_font}">Всего к оплате {_text(total_words)}</font>', body_style),
        Spacer(1, 10 * mm),
    ]
    story.extend(_signature_section(body_style, doc.width, invoice_data.get("signature")))

    doc.build(story)

    if output_path is not None:
        return output_path

    buffer.seek(0)
    return buffer.getvalue()
