from typing import List, Sequence


class SchedulingValidationError(ValueError):
    """Raised when scheduling input is structurally invalid and nothing can be computed.

    Conflicts are never raised; they are returned as reports alongside alternatives.
    """

    def __init__(self, problems: Sequence[str] | str):
        if isinstance(problems, str):
            problems = [problems]
        self.problems: List[str] = list(problems)
        super().__init__("; ".join(self.problems))
