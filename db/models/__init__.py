from .user import Role, User
from .site import Site, SiteAssignment
from .store import Store
from .unit import Unit
from .material import Category, Material

from .request import Request, RequestItem, Approval
from .issue import Issue, IssueItem
from .inventory import Stock, StockMovement, StockHistory

from .supplier import Supplier
from .purchase import PurchaseOrder, PurchaseOrderItem
from .goods_receipt import GoodsReceipt, GoodsReceiptItem
from .audit import AuditLog
from .system_config import SystemConfig

__all__ = [n for n in dir() if n[:1].isupper()]
