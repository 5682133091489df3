from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Verdict(str, Enum):
    CONTINUE = "continue"
    REJECT = "reject"
    FINALIZE = "finalize"


class Disposition(str, Enum):
    HALTED = "halted"
    PROVEN_NON_HALTING = "proven-non-halting"
    HOLDOUT = "holdout"
    NOT_A_CANDIDATE = "not-a-candidate"


class Stage(str, Enum):
    GENERATION = "generation"
    COMPILE = "compile"
    RUNTIME = "runtime"


@dataclass(frozen=True)
class FilterResult:
    verdict: Verdict
    filter_name: Optional[str] = None
    disposition: Optional[Disposition] = None
    steps: int = 0
    score: int = 0

    @property
    def decided(self):
        return self.verdict is not Verdict.CONTINUE


CONTINUE = FilterResult(Verdict.CONTINUE)


def reject(filter_name, disposition=Disposition.PROVEN_NON_HALTING):
    return FilterResult(Verdict.REJECT, filter_name, disposition)


def finalize(filter_name, disposition=None, steps=0, score=0):
    return FilterResult(Verdict.FINALIZE, filter_name, disposition, steps, score)


def run_filters(filters, *args):
    """Apply filters in order, stopping at the first one that decides.

    Each filter is a plain callable returning a ``FilterResult``.
    """
    for check in filters:
        result = check(*args)
        if result.decided:
            return result
    return CONTINUE
