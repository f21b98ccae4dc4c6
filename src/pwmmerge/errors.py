"""Exception hierarchy for motif merging."""


class MergeError(Exception):
    """Base class for all errors raised by pwmmerge."""


class InvalidInputError(MergeError, ValueError):
    """A motif matrix or motif collection cannot be processed."""


class UnknownPolicyError(MergeError, ValueError):
    """An unrecognised strategy name was requested."""


class DegenerateMergeError(MergeError, RuntimeError):
    """Internal invariant violated while merging (programming error)."""
