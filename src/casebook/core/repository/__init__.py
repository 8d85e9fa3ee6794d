"""Repositories over the document store."""

from casebook.core.repository.associations import AssociationManager
from casebook.core.repository.cases import CaseRepository
from casebook.core.repository.collections import CollectionRepository

__all__ = ["AssociationManager", "CaseRepository", "CollectionRepository"]
