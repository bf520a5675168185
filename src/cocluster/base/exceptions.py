"""Exceptions raised by the co-clustering engine."""


class CoclusterError(RuntimeError):
    """Base class for fatal errors during a co-clustering run."""


class CollectiveError(CoclusterError):
    """A collective operation failed; global state is undefined."""


class KernelError(CoclusterError):
    """A compute kernel failed while processing a worker's slice."""
