from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Assumption:
    """
    A modelling assumption behind a causal reading of an IPTW estimate.

    ``testable`` marks whether the data can speak to the assumption
    (positivity can be probed through the propensity scores) or whether it
    must be argued from domain knowledge (exchangeability cannot).
    """

    name: str
    """Human-readable description of the assumption."""

    testable: bool
    """``True`` if the assumption can be probed in the data."""

    def fmt_tag(self) -> str:
        """Fixed-width testability label for summary output."""
        return "[  testable  ]" if self.testable else "[ untestable ]"


class RefutationCheck:
    """
    Outcome of one diagnostic or refutation check.

    ``statistic`` holds the number the verdict was based on (a share of
    units, a maximum weight, a placebo effect), or ``None`` when the check
    could not be computed.
    """

    def __init__(
        self,
        name: str,
        passed: bool,
        detail: str,
        statistic: float | None = None,
    ) -> None:
        self.name = name
        self.passed = passed
        self.detail = detail
        self.statistic = statistic

    def __repr__(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        return f"RefutationCheck({status!r}, {self.name!r})"


class RefutationReport:
    """
    Common behaviour of the check reports.

    Subclasses supply the title through ``_header_lines()``.
    """

    def __init__(
        self,
        checks: list[RefutationCheck],
        treatment: str,
        outcome: str,
    ) -> None:
        self._checks = checks
        self._treatment = treatment
        self._outcome = outcome

    def _header_lines(self) -> list[str]:
        raise NotImplementedError

    @property
    def checks(self) -> list[RefutationCheck]:
        """All checks, in the order they were run."""
        return list(self._checks)

    @property
    def passed(self) -> bool:
        """``True`` if every check passed."""
        return all(c.passed for c in self._checks)

    @property
    def failed_checks(self) -> list[RefutationCheck]:
        """Only the checks that did not pass."""
        return [c for c in self._checks if not c.passed]

    def check(self, name: str) -> RefutationCheck:
        """Look up a check by name."""
        for c in self._checks:
            if c.name == name:
                return c
        raise KeyError(f"No check named {name!r}. Available: {[c.name for c in self._checks]}")

    def summary(self) -> str:
        """Each check with its verdict, followed by the overall verdict."""
        lines = ["", *self._header_lines(), "─" * 50]
        for c in self._checks:
            status = "PASS" if c.passed else "FAIL"
            lines.append(f"  [{status}]  {c.name}: {c.detail}")
        lines.append("")
        if self.passed:
            lines.append("  All checks passed.")
        else:
            lines.append(f"  {len(self.failed_checks)} check(s) failed, see above.")
        lines.append("")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return self.summary()
