"""
Error taxonomy for gq

Each error carries the process exit code the CLI returns for it.
Teardown problems are not errors; they are reported as StepOutcome records.
"""


class GqError(Exception):
    """Base class for orchestration errors"""
    exit_code = 1


class ConfigError(GqError):
    """Configuration could not be validated"""
    exit_code = 1


class PolicyViolation(GqError):
    """Incompatible toggle/mode combination; raised before any side effect"""
    exit_code = 2


class EnvironmentMissing(GqError):
    """Expected directory, virtual environment or executable is absent"""
    exit_code = 3


class DependencyFailure(GqError):
    """An external build/compile/package/container step failed"""
    exit_code = 4


class LivenessFailure(GqError):
    """A just-launched service was not alive after its readiness window"""
    exit_code = 5
