"""
auth/policy.py -- Static role policy: which roles may perform which action.

build_policy() constructs the table once at application startup (api/main.py
lifespan) and the result is stored on app.state.policy. The mapping is a
MappingProxyType over frozensets, so nothing can mutate it after startup.

Membership is flat and exact: a caller is allowed only if their role_name is
literally in the action's role set. There is no hierarchy and no inheritance
-- Admin is listed explicitly wherever Admin is allowed. Unknown actions deny.

Layer rule: stdlib only.
"""

from collections.abc import Mapping
from types import MappingProxyType

ADMIN = "Admin"
ENCODER = "Encoder"
AUDITOR = "Auditor"
VIEWER = "Viewer"

ROLES = (ADMIN, ENCODER, AUDITOR, VIEWER)

_EVERYONE = frozenset(ROLES)
_EDITORS = frozenset({ADMIN, ENCODER})
_ADMINS = frozenset({ADMIN})
_UPLOADERS = frozenset({ADMIN, ENCODER, AUDITOR})

Policy = Mapping[str, frozenset]


def build_policy() -> Policy:
    """Return the immutable action -> permitted-roles mapping."""
    table = {
        # Reads
        "view_audit": _EVERYONE,
        "view_finding": _EVERYONE,
        "view_dashboard": _EVERYONE,
        "view_master_data": _EVERYONE,
        "view_settings": _EVERYONE,
        # Audits
        "create_audit": _EDITORS,
        "update_audit": _EDITORS,
        "delete_audit": _ADMINS,
        "restore_audit": _ADMINS,
        "manage_assignments": _EDITORS,
        # Findings
        "create_finding": _EDITORS,
        "update_finding": _EDITORS,
        "close_finding": _EDITORS,
        "reopen_finding": _ADMINS,
        "delete_finding": _ADMINS,
        "restore_finding": _ADMINS,
        # Evidence and audit attachments
        "upload_attachment": _UPLOADERS,
        "delete_attachment": _UPLOADERS,
        # Master data
        "manage_vessels": _ADMINS,
        "manage_audit_types": _ADMINS,
        "manage_audit_parties": _ADMINS,
        "manage_audit_companies": _ADMINS,
        "manage_auditors": _ADMINS,
        "manage_audit_results": _ADMINS,
        # Administration
        "manage_users": _ADMINS,
        "manage_roles": _ADMINS,
        "manage_pages": _ADMINS,
        "manage_permissions": _ADMINS,
        "manage_settings": _ADMINS,
    }
    return MappingProxyType(table)


def is_allowed(policy: Policy, role_name: str, action: str) -> bool:
    return role_name in policy.get(action, frozenset())
