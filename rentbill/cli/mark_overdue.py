"""CLI job marking pending invoices past their due date as overdue.

Usage:
    python -m rentbill.cli.mark_overdue
    rentbill-mark-overdue  (console script)

Exit Codes:
    0 - Success
    1 - Failure: error encountered; no invoice changed

Logging:
    INFO level logs to both stdout and logs/jobs.log
"""

import logging
import sys

from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from rentbill.services.context import RequestContext
from rentbill.services.logging import setup_server_logging

logger = logging.getLogger(__name__)


def main() -> int:
    """
    Run the overdue sweep once.

    Returns:
        Exit code: 0 for success, 1 for failure
    """
    load_dotenv()
    setup_server_logging("logs/jobs.log")

    from rentbill.services.db import SessionLocal
    from rentbill.services.invoice_service import InvoiceService

    db = SessionLocal()
    try:
        marked = InvoiceService(db, RequestContext.system()).mark_overdue_invoices()
        logger.info("Overdue sweep finished: %d invoices marked", len(marked))
        return 0
    except SQLAlchemyError as e:
        logger.error("Overdue sweep failed: %s", e, exc_info=True)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
