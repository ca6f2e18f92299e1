"""Exception types for the model build pipeline."""


class BuildError(Exception):
    """Base exception for build pipeline errors."""

    pass


class ConfigurationError(BuildError):
    """Invalid build configuration (conflicting or missing modes, missing environment values)."""

    pass


class GeneratorError(BuildError):
    """External code generator failed or did not produce its outputs."""

    pass


class ArtifactCopyError(BuildError, OSError):
    """Copying a generated artifact to its destination failed."""

    pass
