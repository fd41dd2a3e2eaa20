"""
License records, key scheme, session view and game-access rules.

`LicenseAuthority` lives in `arcadegate.core.licensing.authority`; it is not
re-exported here because the store package imports these models.
"""

from arcadegate.core.licensing.models import AdminAccount, AdminAccountInfo, AdminRole, License, RecordKind

__all__ = ["AdminAccount", "AdminAccountInfo", "AdminRole", "License", "RecordKind"]
