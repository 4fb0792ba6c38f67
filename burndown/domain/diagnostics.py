import logging

logger = logging.getLogger(__name__)

CYCLE = "cycle"
MISSING_DEPENDENCY = "missing_dependency"
STALLED = "stalled"
UNSTAFFED_RESOURCE = "unstaffed_resource"


class Diagnostics:
    """
    Collects anomalies found while scheduling without interrupting the run.

    Cycles, dangling dependency ids and simulations that can make no further
    progress are all recoverable: the schedule is still produced, and the
    caller can inspect what was glossed over here.
    """

    def __init__(self):
        self.entries = []
        self._seen = set()

    def warn(self, kind, message, **context):
        """Record an anomaly once; repeated identical reports are dropped."""
        key = (kind, tuple(sorted((k, repr(v)) for k, v in context.items())))
        if key in self._seen:
            return
        self._seen.add(key)
        entry = {"kind": kind, "message": message}
        entry.update(context)
        self.entries.append(entry)
        logger.warning(message)

    def of_kind(self, kind):
        return [entry for entry in self.entries if entry["kind"] == kind]

    @property
    def cycles(self):
        return self.of_kind(CYCLE)

    @property
    def missing_dependencies(self):
        return self.of_kind(MISSING_DEPENDENCY)

    def __bool__(self):
        return bool(self.entries)

    def __len__(self):
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __repr__(self):
        return f"Diagnostics({self.entries!r})"
