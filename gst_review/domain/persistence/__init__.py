from .invoices import (
    get_invoice,
    list_invoices,
    update_invoice
)

from .transitions import (
    transition_invoice,
    bulk_transition
)

from .store import (
    Neo4jInvoiceStore
)
