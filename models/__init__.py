"""Database models."""

from db import Base

# Import all models so Alembic can detect them
from models.role import Permission, Role, RolePermission
from models.user import User
from models.sample_type import SampleType
from models.source import Source
from models.storage_location import StorageLocation
from models.experiment import Experiment
from models.supplier import Supplier
from models.test_definition import TestDefinition
from models.sample import Sample
from models.chain_of_custody import ChainOfCustodyEntry
from models.sample_test import SampleTestRun
from models.reagent import Reagent
from models.reagent_order import ReagentOrder

__all__ = [
    "Base",
    "Role",
    "Permission",
    "RolePermission",
    "User",
    "SampleType",
    "Source",
    "StorageLocation",
    "Experiment",
    "Supplier",
    "TestDefinition",
    "Sample",
    "ChainOfCustodyEntry",
    "SampleTestRun",
    "Reagent",
    "ReagentOrder",
]
