"""
Comparison Engine errors.

Validation problems are ValueErrors and system dashboard edits are
PermissionErrors, so callers that only know the builtin hierarchy still
catch them. Collaborator failures are not wrapped.
"""


class ComparisonValidationError(ValueError):
    """Request cannot be served: missing subject, no comparables, etc."""


class DashboardNotFoundError(ComparisonValidationError):
    """Referenced dashboard does not exist and no fallback is available."""

    def __init__(self, dashboard_id=None):
        self.dashboard_id = dashboard_id
        if dashboard_id:
            message = f"Dashboard with ID {dashboard_id} not found"
        else:
            message = "Dashboard not found"
        super().__init__(message)


class SystemDashboardError(PermissionError):
    """Attempt to modify or delete a built-in system dashboard."""

    def __init__(self, dashboard_id: str, action: str = "modified"):
        self.dashboard_id = dashboard_id
        super().__init__(f"System dashboards cannot be {action}: {dashboard_id}")


class PropertyNotFoundError(LookupError):
    """Property provider has no record for the requested id."""

    def __init__(self, property_id: str):
        self.property_id = property_id
        super().__init__(f"Property {property_id} not found")
