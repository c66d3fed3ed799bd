"""
Application exceptions.

Every error raised on purpose by the inventory backend derives from
InventoryError so the JSON error handlers registered in create_app can turn it
into a response without knowing the concrete type.
"""

from typing import Any, Dict, List, Optional


class InventoryError(Exception):
    """Base exception carrying an HTTP status code and structured details."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 status_code: Optional[int] = None):
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {'error': self.message, 'type': self.__class__.__name__}
        if self.details:
            payload['details'] = self.details
        return payload

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}')"


class ResourceNotFoundError(InventoryError):
    status_code = 404

    def __init__(self, resource_type: str = 'Resource', resource_id: Optional[str] = None):
        message = f'{resource_type} not found'
        if resource_id:
            message += f' (ID: {resource_id})'
        super().__init__(message, {'resource_type': resource_type, 'resource_id': resource_id})


class AssignmentConflictError(InventoryError):
    """Raised when a checkout or status change breaks an assignment rule."""

    status_code = 409

    def __init__(self, conflicts: List[Dict[str, str]], message: str = 'Assignment conflicts detected'):
        self.conflicts = conflicts
        super().__init__(message, {'conflicts': conflicts})


class ExportError(InventoryError):
    """Raised when the export file could not be encoded or written."""

    status_code = 500

    def __init__(self, reason: str):
        super().__init__(f'export failed: {reason}')
