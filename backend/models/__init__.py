from models.audit_log import AuditLog
from models.core_entities import CoreEntity, CoreDynamicData
from models.core_relationships import CoreRelationship
from models.universal_transactions import UniversalTransaction, PurchaseOrderStatus

__all__ = ['AuditLog', 'CoreDynamicData', 'CoreEntity', 'CoreRelationship', 'PurchaseOrderStatus', 'UniversalTransaction',]
