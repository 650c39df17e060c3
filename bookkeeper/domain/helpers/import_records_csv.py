import logging
from dataclasses import asdict
from pathlib import Path
from typing import Callable, Dict, Optional

import requests

from bookkeeper.domain.errors import ValidationFailure
from bookkeeper.domain.helpers.csv_format import (
    parse_expense_row,
    parse_income_row,
    split_rows,
)
from bookkeeper.domain.models import ImportResult

logger = logging.getLogger(__name__)


def _expense_payload(cells) -> Dict:
    return asdict(parse_expense_row(cells))


def _income_payload(cells) -> Dict:
    # asdict recurses into the PaymentMethod entries
    return asdict(parse_income_row(cells))


ENDPOINTS: Dict[str, tuple] = {
    "expenses": ("/api/expenses", _expense_payload),
    "income": ("/api/income", _income_payload),
}

AUTH_FAILURES = (401, 403)


def post_rows(
    text: str,
    kind: str,
    api_url: str,
    token: Optional[str] = None,
    http_post: Callable = requests.post,
) -> ImportResult:
    """
    Send one create request per CSV row, the way the web client imports.
    Rows that fail to parse, fail to reach the API or are rejected by it are
    counted and skipped. A 401 or 403 aborts the run with requests.HTTPError.
    """
    path, build_payload = ENDPOINTS[kind]
    url = api_url.rstrip("/") + path
    headers = {}
    if token:
        headers["Authorization"] = f"Bearer {token}"

    result = ImportResult()
    for line_no, cells in enumerate(split_rows(text), start=1):
        try:
            payload = build_payload(cells)
        except ValidationFailure as e:
            logger.warning("Row %s not sent: %s", line_no, e)
            result.failed += 1
            continue
        try:
            resp = http_post(url, json=payload, headers=headers, timeout=10)
        except requests.RequestException as e:
            logger.warning("Row %s not delivered: %s", line_no, e)
            result.failed += 1
            continue
        if resp.status_code in AUTH_FAILURES:
            # Bad credentials fail every row
            resp.raise_for_status()
        if not 200 <= resp.status_code < 300:
            logger.warning("Row %s rejected (%s): %s", line_no, resp.status_code, resp.text)
            result.failed += 1
            continue
        result.succeeded += 1
    return result


def import_records_from_csv(
    csv_path: str, kind: str, api_url: str, token: Optional[str] = None
) -> ImportResult:
    text = Path(csv_path).read_text(encoding="utf-8-sig")
    result = post_rows(text, kind, api_url, token=token)
    print(f"Imported {result.succeeded} {kind} rows, {result.failed} failed.")
    return result


if __name__ == "__main__":
    import argparse

    from bookkeeper.utils.logging_setup import configure_logging

    parser = argparse.ArgumentParser(description="Import expenses or income from CSV.")
    parser.add_argument("csv_path", help="Path to CSV file")
    parser.add_argument("kind", choices=sorted(ENDPOINTS), help="Record type")
    parser.add_argument(
        "--api-url", help="Base URL of the bookkeeper API", default="http://localhost:8000"
    )
    parser.add_argument(
        "--token", help="Bearer session token for API authentication", default=None
    )
    args = parser.parse_args()

    configure_logging()
    import_records_from_csv(args.csv_path, args.kind, args.api_url, token=args.token)
