"""
Services Package for StoreDesk
==============================

Business logic shared by the dashboard routes and the chat pipeline.

Available Services:
-------------------
- **helpers**: Pagination, enum filters, document numbers, price formatting
- **status_machine**: Allowed status transitions for deals, orders and vouchers
- **billing**: Invoice creation and payment recording
- **orders**: Order creation and shipping calculation
- **notifications**: Owner notifications (in-app, email, webhook)

Usage:
------
    from storedesk.services.billing import create_invoice, record_payment
    from storedesk.services.notifications import dispatch_notification

Or import the entire module:

    from storedesk.services import billing, orders
"""

from . import helpers
from . import status_machine
from . import billing
from . import orders
from . import notifications

__all__ = ["helpers", "status_machine", "billing", "orders", "notifications"]
