# app/models/__init__.py
from it_inventory.app import db

# Import models after db
from .user import User
from .asset_history import AssetHistory
from .asset import Asset, AssetStatus
from .employee import Employee
from .assignment import Assignment

__all__ = ['User', 'AssetHistory', 'Asset', 'AssetStatus', 'Employee', 'Assignment']
