"""Work unit capability.

A work unit is any callable taking (session, record, params). Plain
functions, closures and small classes with __call__ all qualify; there is
no base class to inherit from.

Example:
    def deactivate(session: StoreSession, record: Account, params: Mapping[str, Any]) -> None:
        record.active = False
        record.reason = params["reason"]

    driver.run(ids, 50, deactivate, {"reason": "leaver"})
"""

from collections.abc import Mapping
from typing import Any, Protocol


class WorkUnit(Protocol):
    """Operation applied to each materialized record of a batch run.

    Raising any exception aborts the run. Work performed since the last
    checkpoint is not committed.
    """

    def __call__(self, session: Any, record: Any, params: Mapping[str, Any]) -> None: ...
