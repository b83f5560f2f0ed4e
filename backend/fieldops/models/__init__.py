from .auth import User
from .audit import StaffActivity
from .distributors import Distributor, LegacyShop, Shop, StaffDistributorAssignment
from .catalog import Brand, Variant, VariantSize
from .orders import Order, OrderItem
from .claims import DamageClaim
from .inquiries import SalesInquiry, SalesInquiryProduct
from .estimates import SupplyEstimate, SupplyEstimateRevision
from .tasks import Task, TaskItem, TaskPunch
from .activities import MarketingStaffActivity, RetailerShopActivity, ShopSalesOrder, AlternateProvider

__all__ = [
    'User', 'StaffActivity',
    'Distributor', 'LegacyShop', 'Shop', 'StaffDistributorAssignment',
    'Brand', 'Variant', 'VariantSize',
    'Order', 'OrderItem',
    'DamageClaim',
    'SalesInquiry', 'SalesInquiryProduct',
    'SupplyEstimate', 'SupplyEstimateRevision',
    'Task', 'TaskItem', 'TaskPunch',
    'MarketingStaffActivity', 'RetailerShopActivity', 'ShopSalesOrder', 'AlternateProvider',
]
