from __future__ import annotations

from datetime import datetime
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from minglz.core.timeutils import to_local, utcnow
from minglz.schemas.stats import EventStats, StatsOut

# built-in CID font with Hangul coverage; event names are usually Korean
KOREAN_FONT = "HYSMyeongJo-Medium"
pdfmetrics.registerFont(UnicodeCIDFont(KOREAN_FONT))


def _fmt_dt(dt: datetime | None) -> str:
    if not dt:
        return ""
    return to_local(dt).strftime("%Y-%m-%d %H:%M")


def _table(header: list[str], rows: list[list[str]]) -> Table:
    tbl = Table([header] + rows, repeatRows=1)
    tbl.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#111827")),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONTNAME", (0, 0), (-1, -1), KOREAN_FONT),
                ("FONTSIZE", (0, 0), (-1, 0), 9),
                ("FONTSIZE", (0, 1), (-1, -1), 8),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.whitesmoke, colors.lightgrey]),
                ("LEFTPADDING", (0, 0), (-1, -1), 4),
                ("RIGHTPADDING", (0, 0), (-1, -1), 4),
                ("TOPPADDING", (0, 0), (-1, -1), 3),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
            ]
        )
    )
    return tbl


def _event_section(e: EventStats, styles) -> list:
    story = [
        Paragraph(f"{escape(e.name)} ({escape(e.domain_code)})", styles["Heading3"]),
        _table(
            ["Inflow", "Issued", "Used", "Conversion"],
            [[str(e.total_inflow), str(e.coupon_issued), str(e.coupon_used), f"{e.conversion_rate}%"]],
        ),
        Spacer(1, 4),
        _table(
            ["Hour"] + [p.hour for p in e.hourly_data],
            [
                ["Inflow"] + [str(p.inflow) for p in e.hourly_data],
                ["Issued"] + [str(p.issuance) for p in e.hourly_data],
                ["Used"] + [str(p.usage) for p in e.hourly_data],
            ],
        ),
    ]

    if e.stores:
        story.append(Spacer(1, 4))
        story.append(_table(["Store", "Slug", "Validated"], [[s.name, s.slug, str(s.validated)] for s in e.stores]))

    story.append(Spacer(1, 10))
    return story


def build_stats_pdf(stats: StatsOut, *, owner_email: str) -> bytes:
    buf = BytesIO()
    title = "MyMinglz Event Report"
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=12 * mm,
        rightMargin=12 * mm,
        topMargin=12 * mm,
        bottomMargin=12 * mm,
        title=title,
    )

    styles = getSampleStyleSheet()
    for name in ("Normal", "Heading3"):
        styles[name].fontName = KOREAN_FONT

    if stats.range:
        period_txt = f"{_fmt_dt(stats.range.start)} ~ {_fmt_dt(stats.range.end)}"
    else:
        period_txt = "all time"

    story = [
        Paragraph(f"<b>{title}</b>", styles["Title"]),
        Spacer(1, 6),
        Paragraph(f"Account: {escape(owner_email)}", styles["Normal"]),
        Paragraph(f"Period: {escape(stats.period)} | {period_txt}", styles["Normal"]),
        Paragraph(f"Generated at: {_fmt_dt(utcnow())} | Events: {stats.total_events}", styles["Normal"]),
    ]
    if stats.best_event:
        story.append(
            Paragraph(
                f"Best: {escape(stats.best_event.name)} ({stats.best_event.conversion_rate}%) | "
                f"Worst: {escape(stats.worst_event.name)} ({stats.worst_event.conversion_rate}%)",
                styles["Normal"],
            )
        )
    story.append(Spacer(1, 10))

    for e in stats.events:
        story.extend(_event_section(e, styles))

    doc.build(story)
    return buf.getvalue()
