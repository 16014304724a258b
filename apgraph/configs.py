from dataclasses import dataclass
from typing import Optional

BACKENDS = ("local", "threads")


@dataclass
class APConfig:
    """Settings for an affinity propagation run.

    damping is the lambda of the message updates: it weights the freshly
    computed message, so r' = damping * new + (1 - damping) * r.
    """
    max_iterations: int = 100
    damping: float = 0.5
    normalization: bool = False
    symmetric: bool = True
    convergence_interval: int = 10
    backend: str = "local"
    n_workers: Optional[int] = None
    show_progress: bool = False

    def __post_init__(self):
        if self.max_iterations < 0:
            raise ValueError(f"max_iterations must be >= 0, got {self.max_iterations}")

        if not 0.0 < self.damping < 1.0:
            raise ValueError(f"damping must be in (0, 1), got {self.damping}")

        if self.convergence_interval < 1:
            raise ValueError(
                f"convergence_interval must be >= 1, got {self.convergence_interval}"
            )

        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown backend '{self.backend}', expected one of {BACKENDS}")

        if self.n_workers is not None and self.n_workers < 1:
            raise ValueError(f"n_workers must be >= 1, got {self.n_workers}")
