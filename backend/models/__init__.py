from models.tenants import Tenant
from models.profiles import Profile, AppRole
from models.plans import Plan
from models.students import Student, StudentStatus
from models.products import Product, ProductStatus
from models.sales import Sale, PaymentMethod
from models.sale_items import SaleItem
from models.product_stock_audit import ProductStockAudit
from models.app_config import AppConfig
from models.audit_log import AuditLog

__all__ = ['AppConfig', 'AppRole', 'AuditLog', 'PaymentMethod', 'Plan', 'Product', 'ProductStatus', 'ProductStockAudit', 'Profile', 'Sale', 'SaleItem', 'Student', 'StudentStatus', 'Tenant',]
