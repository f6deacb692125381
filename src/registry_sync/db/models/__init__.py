from registry_sync.db.models.registry_record import RegistryRecordRow
from registry_sync.db.models.registry_scope import RegistryScopeRow

__all__ = [
    "RegistryRecordRow",
    "RegistryScopeRow",
]
