# definition_exceptions.py
class EntityDefinitionError(ValueError):
    """Base class for programmer errors in entity and property definitions."""
    pass

class InvalidIdentifierError(EntityDefinitionError):
    """Error raised when a table, column or entity name is not a safe SQL identifier."""
    pass

class DuplicatePropertyError(EntityDefinitionError):
    """Error raised when two properties of one entity share a logical key."""
    pass

class DuplicateColumnError(EntityDefinitionError):
    """Error raised when two properties of one entity share a column name."""
    pass

class MissingPrimaryKeyError(EntityDefinitionError):
    """Error raised when an operation needs a primary key the entity does not define."""
    pass

class UnknownEntityError(EntityDefinitionError, KeyError):
    """Error raised when an entity reference does not resolve to a registered entity."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""

class EmptyKeyListError(EntityDefinitionError):
    """Error raised when none of the given keys resolve to a persistent property."""
    pass

class EntitySealedError(EntityDefinitionError):
    """Error raised when a registered entity is modified."""
    pass
