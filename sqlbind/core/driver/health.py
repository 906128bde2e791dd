"""
Connection health check.
"""

import logging
from typing import Any

from sqlbind.models import ProductTypeEnum

from .connect import DRIVER_ERRORS, execute

_log = logging.getLogger(__name__)


def health_check(conn: Any, product_type: ProductTypeEnum) -> bool:
    """
    Run SELECT 1 and return True if it answers. All supported products accept SELECT 1.
    """
    cur = None
    try:
        cur = execute(conn, "SELECT 1", product_type=product_type)
        row = cur.fetchone()
        return row is not None and row[0] == 1
    except DRIVER_ERRORS as e:
        _log.debug("health_check failed: %s", e)
        return False
    finally:
        if cur is not None:
            try:
                cur.close()
            except DRIVER_ERRORS:
                pass
