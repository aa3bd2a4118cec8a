"""CSV import of external visitor lists."""
import io
import logging

import pandas as pd

from reservation_portal.schemas.reservation import ExternalVisitor

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("company", "name", "email")


class VisitorCsvError(ValueError):
    pass


def parse_visitor_csv(text: str) -> list[ExternalVisitor]:
    """Parse ``company,name,email`` rows (header required, extra columns ignored)."""
    if not text.strip():
        return []
    try:
        df = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False, skipinitialspace=True)
    except pd.errors.ParserError as exc:
        raise VisitorCsvError(f"Malformed CSV: {exc}") from exc

    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise VisitorCsvError(f"Missing column(s): {', '.join(missing)}")

    df = df[list(REQUIRED_COLUMNS)].fillna("").apply(lambda col: col.str.strip())
    df = df[(df != "").any(axis=1)]

    nameless = df.index[df["name"] == ""]
    if len(nameless):
        rows = ", ".join(str(i + 2) for i in nameless)  # +2: header line and 1-based rows
        raise VisitorCsvError(f"Visitor name missing on row(s) {rows}")

    visitors = [ExternalVisitor(**row) for row in df.to_dict(orient="records")]
    logger.info("Imported %d external visitor(s) from CSV", len(visitors))
    return visitors
