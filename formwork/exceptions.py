class ConfigurationError(ValueError):
    """Raised by a builder when a resource's own settings cannot be combined."""


class IntegrityError(Exception):
    """Raised when a stack cannot be finalized."""


class MissingReferenceError(IntegrityError):
    """Raised when a registered resource references an id that was never registered."""

    def __init__(self, synthesized_id: str, referenced_by: str, kind: str):
        self.synthesized_id = synthesized_id
        self.referenced_by = referenced_by
        self.kind = kind
        super().__init__(
            f"Resource '{referenced_by}' references '{synthesized_id}', which is not part of "
            f"the stack. Did you forget to register the {kind}?"
        )


class DuplicateIdError(IntegrityError):
    """Raised when two registered resources share a ResourceId or a SynthesizedId."""

    def __init__(self, duplicate_id: str, id_type: str):
        self.duplicate_id = duplicate_id
        self.id_type = id_type
        super().__init__(
            f"Duplicate {id_type} '{duplicate_id}': each resource must be registered once "
            f"and {id_type}s must be unique within a stack."
        )


class MissingPermissionsError(IntegrityError):
    """Raised when a role does not allow a service a resource using it declared it needs."""

    def __init__(self, roles: list[str]):
        self.roles = roles
        super().__init__(
            "One or more roles seem to be missing permissions to access services: "
            f"{'; '.join(roles)}. Did you forget to add a permission?"
        )


class DiffError(Exception):
    """Raised when a previously deployed template cannot be read."""


class ProjectError(Exception):
    """Raised when no formwork project is found or the app file is not usable."""


class DeployError(Exception):
    """Raised when a stack could not be deployed."""


class AssetError(DeployError):
    """Raised when an asset could not be uploaded."""


class StackCreateError(DeployError):
    """Raised when CloudFormation reports a failed stack creation."""

    def __init__(self, name: str, status: str):
        self.name = name
        self.status = status
        super().__init__(f"Unable to create stack '{name}': {status}")


class StackUpdateError(DeployError):
    """Raised when CloudFormation reports a failed stack update."""

    def __init__(self, name: str, status: str):
        self.name = name
        self.status = status
        super().__init__(f"Unable to update stack '{name}': {status}")


class DestroyError(Exception):
    """Raised when a stack could not be destroyed."""


class StackDeleteError(DestroyError):
    """Raised when CloudFormation reports a failed stack deletion."""

    def __init__(self, name: str, status: str):
        self.name = name
        self.status = status
        super().__init__(f"Unable to delete stack '{name}': {status}")
