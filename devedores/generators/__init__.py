"""Sample data generators."""

from devedores.generators.base import BaseGenerator
from devedores.generators.collection import CollectionGenerator, populate

__all__ = ["BaseGenerator", "CollectionGenerator", "populate"]
