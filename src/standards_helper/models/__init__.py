from standards_helper.models.base import Base
from standards_helper.models.standard import Standard

__all__ = ["Base", "Standard"]
