"""Resource/operation request dispatch."""

from btc_watcher.dispatch.dispatcher import RequestDispatcher
from btc_watcher.dispatch.operations import (
    OPERATIONS,
    OperationSpec,
    Resource,
    Shape,
    get_operation,
    list_operations,
)

__all__ = [
    "RequestDispatcher",
    "OPERATIONS", "OperationSpec", "Resource", "Shape",
    "get_operation", "list_operations",
]
