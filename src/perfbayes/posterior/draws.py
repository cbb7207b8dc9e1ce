"""
Tidy posterior draws: one column of mean-performance draws per model.

``PosteriorDraws`` is produced once per fit and never modified afterwards;
its array is marked read-only. Every fit carries a unique ``fit_id``. Draw
``i`` of one model is only comparable with draw ``i`` of another model from
the same fit, so every operation that pairs columns checks the ``fit_id``.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..errors import ConvergenceWarning, IncompatibleDrawsError

# ------------------------------------------------------------------------------
# Single-model view
# ------------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class ModelDraws:
    """Posterior draws of one model's mean performance.

    Parameters
    ----------
    model_id : str
        Model identifier.
    values : np.ndarray, shape ``(n_draws,)``
        Read-only draws on the original outcome scale.
    fit_id : str
        Identifier of the fit the draws come from.
    """

    model_id: str
    values: np.ndarray
    fit_id: str

    @property
    def n_draws(self) -> int:
        return int(self.values.shape[0])

    def mean(self) -> float:
        return float(np.mean(self.values))

    def __len__(self):
        return self.n_draws

    def __array__(self, dtype=None, copy=None):
        return np.array(self.values, dtype=dtype)


# ------------------------------------------------------------------------------
# All-model draws
# ------------------------------------------------------------------------------


@dataclass(eq=False)
class PosteriorDraws:
    """Back-transformed posterior draws of every model's mean performance.

    Parameters
    ----------
    values : np.ndarray, shape ``(n_draws, n_models)``
        Draws on the original scale of the input statistic.
    model_ids : tuple of str
        Column labels.
    fit_id : str
        Unique identifier of the fit that produced the draws.
    spec : ModelSpec, optional
        Specification the draws were sampled from.
    raw : RawDraws, optional
        Link-scale draws the tidy values were derived from.
    convergence_warnings : tuple of ConvergenceWarning
        Reliability concerns reported by the sampler.

    Examples
    --------
    >>> draws = perfbayes.fit(table, seed=1)
    >>> draws.model_ids
    ('glm', 'knn', 'rf')
    >>> draws["rf"].mean()
    >>> draws.to_frame().head()
    """

    values: np.ndarray
    model_ids: Tuple[str, ...]
    fit_id: str
    spec: Optional[object] = field(default=None, repr=False)
    raw: Optional[object] = field(default=None, repr=False)
    convergence_warnings: Tuple[ConvergenceWarning, ...] = ()

    def __post_init__(self):
        values = np.array(self.values, dtype=float)
        if values.ndim != 2:
            raise ValueError(
                f"Posterior draws must be 2-D (draws x models), got {values.ndim}-D"
            )
        self.model_ids = tuple(self.model_ids)
        if values.shape[1] != len(self.model_ids):
            raise ValueError(
                f"Got {values.shape[1]} draw columns for "
                f"{len(self.model_ids)} model ids"
            )
        if len(set(self.model_ids)) != len(self.model_ids):
            raise ValueError(f"Duplicate model ids: {list(self.model_ids)}")
        values.setflags(write=False)
        self.values = values
        self.convergence_warnings = tuple(self.convergence_warnings)

    # --------------------------------------------------------------------------
    # Shape
    # --------------------------------------------------------------------------

    @property
    def n_draws(self) -> int:
        return int(self.values.shape[0])

    @property
    def n_models(self) -> int:
        return len(self.model_ids)

    @property
    def has_convergence_issues(self) -> bool:
        """True when the sampler attached at least one convergence warning."""
        return len(self.convergence_warnings) > 0

    # --------------------------------------------------------------------------
    # Access
    # --------------------------------------------------------------------------

    def _position(self, model_id: str) -> int:
        try:
            return self.model_ids.index(model_id)
        except ValueError:
            raise KeyError(
                f"Unknown model {model_id!r}; available models are "
                f"{list(self.model_ids)}"
            ) from None

    def __getitem__(self, model_id: str) -> ModelDraws:
        return ModelDraws(
            model_id=model_id,
            values=self.values[:, self._position(model_id)],
            fit_id=self.fit_id,
        )

    def __contains__(self, model_id) -> bool:
        return model_id in self.model_ids

    def __iter__(self):
        return iter(self.model_ids)

    def __len__(self):
        return self.n_models

    def select(self, model_ids: Iterable[str]) -> "PosteriorDraws":
        """Subset of the columns that keeps the ``fit_id``."""
        model_ids = list(model_ids)
        columns = [self._position(m) for m in model_ids]
        return PosteriorDraws(
            values=self.values[:, columns],
            model_ids=tuple(model_ids),
            fit_id=self.fit_id,
            spec=self.spec,
            raw=self.raw,
            convergence_warnings=self.convergence_warnings,
        )

    def to_frame(self) -> pd.DataFrame:
        """Long tidy table with ``draw``, ``model`` and ``posterior`` columns."""
        n_draws, n_models = self.values.shape
        models = np.array(self.model_ids, dtype=object)
        return pd.DataFrame(
            {
                "draw": np.tile(np.arange(n_draws), n_models),
                "model": np.repeat(models, n_draws),
                "posterior": self.values.T.reshape(-1),
            }
        )

    def to_wide(self) -> pd.DataFrame:
        """Draws as a ``(n_draws, n_models)`` DataFrame."""
        return pd.DataFrame(np.array(self.values), columns=list(self.model_ids))

    def __repr__(self):
        return (
            f"PosteriorDraws(n_draws={self.n_draws}, "
            f"models={list(self.model_ids)}, fit_id={self.fit_id!r}, "
            f"convergence_warnings={len(self.convergence_warnings)})"
        )


# ------------------------------------------------------------------------------
# Combining draws
# ------------------------------------------------------------------------------


def check_same_fit(*items: Union[PosteriorDraws, ModelDraws]) -> str:
    """
    Return the shared ``fit_id`` of ``items``.

    Raises
    ------
    IncompatibleDrawsError
        If the items come from different fits or have different draw counts.
    """
    fit_ids = {item.fit_id for item in items}
    if len(fit_ids) > 1:
        raise IncompatibleDrawsError(
            "Posterior draws from different fits cannot be paired draw by "
            f"draw (fit ids: {sorted(fit_ids)})"
        )
    n_draws = {item.n_draws for item in items}
    if len(n_draws) > 1:
        raise IncompatibleDrawsError(
            f"Posterior draws have different lengths: {sorted(n_draws)}"
        )
    return fit_ids.pop()


def combine_draws(
    draws: Union[PosteriorDraws, Sequence[PosteriorDraws]],
) -> PosteriorDraws:
    """
    Merge column subsets of one fit back into a single ``PosteriorDraws``.

    Parameters
    ----------
    draws : PosteriorDraws or sequence of PosteriorDraws
        Draws to merge; all must share the same ``fit_id``.

    Returns
    -------
    PosteriorDraws
        Columns in first-seen order.

    Raises
    ------
    IncompatibleDrawsError
        If the draws come from different fits.
    ValueError
        If ``draws`` is empty.
    """
    if isinstance(draws, PosteriorDraws):
        return draws
    draws = list(draws)
    if not draws:
        raise ValueError("No posterior draws to combine")
    check_same_fit(*draws)
    if len(draws) == 1:
        return draws[0]

    model_ids: List[str] = []
    columns = []
    for item in draws:
        for model_id in item.model_ids:
            if model_id not in model_ids:
                model_ids.append(model_id)
                columns.append(item[model_id].values)

    first = draws[0]
    return PosteriorDraws(
        values=np.column_stack(columns),
        model_ids=tuple(model_ids),
        fit_id=first.fit_id,
        spec=first.spec,
        raw=first.raw,
        convergence_warnings=first.convergence_warnings,
    )
