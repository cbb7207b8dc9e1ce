"""
Input processing and validation utilities for perfbayes.

This module turns a wide performance table (one row per resample, one column
per model) into the long ``(resample_id, model_id, statistic)`` layout used by
the hierarchical model. All checks that can be done on the table alone are
done here so that malformed input fails before any model is built.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Set, Tuple

import numpy as np
import pandas as pd

from ..errors import SchemaError

logger = logging.getLogger(__name__)

# Resampling tables name their key columns id, id2, id3, ...
_ID_COLUMN_PATTERN = re.compile(r"^id\d*$")

# Separator used to build composite resample identifiers
RESAMPLE_KEY_SEPARATOR = "/"

# ------------------------------------------------------------------------------
# Performance table container
# ------------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class PerformanceTable:
    """Long-format table of per-resample performance statistics.

    Parameters
    ----------
    data : pd.DataFrame
        Long table with columns ``resample_id``, ``model_id``, ``statistic``
        followed by the original resample key columns.
    model_ids : tuple of str
        Model identifiers in alphabetical order.
    resample_ids : tuple of str
        Resample identifiers in input order.
    id_columns : tuple of str
        Names of the resample key columns the identifiers were built from.
    """

    data: pd.DataFrame
    model_ids: Tuple[str, ...]
    resample_ids: Tuple[str, ...]
    id_columns: Tuple[str, ...] = ()

    @property
    def frame(self) -> pd.DataFrame:
        """Copy of the long table (the stored table is never handed out)."""
        return self.data.copy()

    @property
    def n_models(self) -> int:
        return len(self.model_ids)

    @property
    def n_resamples(self) -> int:
        return len(self.resample_ids)

    @property
    def n_obs(self) -> int:
        return len(self.data)

    @property
    def statistic(self) -> np.ndarray:
        """Outcome statistic as a float array, one entry per row."""
        return self.data["statistic"].to_numpy(dtype=float, copy=True)

    @property
    def model_index(self) -> np.ndarray:
        """Integer position of each row's model within ``model_ids``."""
        lookup = {m: i for i, m in enumerate(self.model_ids)}
        return self.data["model_id"].map(lookup).to_numpy(dtype=int)

    @property
    def resample_index(self) -> np.ndarray:
        """Integer position of each row's resample within ``resample_ids``."""
        lookup = {r: i for i, r in enumerate(self.resample_ids)}
        return self.data["resample_id"].map(lookup).to_numpy(dtype=int)

    def triples(self) -> Set[Tuple[str, str, float]]:
        """Return the table content as a set of (resample, model, value)."""
        return set(
            zip(
                self.data["resample_id"],
                self.data["model_id"],
                self.data["statistic"].astype(float),
            )
        )

    def is_balanced(self) -> bool:
        """True when every (resample, model) cell is observed exactly once."""
        return self.n_obs == self.n_models * self.n_resamples

    def empirical_means(self) -> pd.Series:
        """Observed mean statistic per model, indexed in model order."""
        return (
            self.data.groupby("model_id", sort=False)["statistic"]
            .mean()
            .reindex(list(self.model_ids))
        )

    def __len__(self):
        return self.n_obs


# ------------------------------------------------------------------------------
# Input processor
# ------------------------------------------------------------------------------


class InputProcessor:
    """Handles validation and reshaping of performance tables."""

    @staticmethod
    def detect_id_columns(
        table: pd.DataFrame, id_columns: Optional[Sequence[str]] = None
    ) -> List[str]:
        """
        Resolve the resample key columns of a wide table.

        Parameters
        ----------
        table : pd.DataFrame
            Wide performance table.
        id_columns : Optional[Sequence[str]], default=None
            Explicit key columns. If None, columns named ``id``, ``id2``, ...
            are used.

        Returns
        -------
        List[str]
            Key column names in outer-to-inner order.

        Raises
        ------
        SchemaError
            If no key column can be found or an explicit one is missing.
        """
        if id_columns is not None:
            if isinstance(id_columns, str):
                id_columns = [id_columns]
            id_columns = list(id_columns)
            missing = [c for c in id_columns if c not in table.columns]
            if missing or not id_columns:
                raise SchemaError(
                    f"Resample key columns {missing or id_columns} are absent "
                    f"from the table (columns: {list(table.columns)})"
                )
            return id_columns

        detected = [
            c
            for c in table.columns
            if isinstance(c, str) and _ID_COLUMN_PATTERN.match(c)
        ]
        if not detected:
            raise SchemaError(
                "No resample key columns found; expected columns named "
                f"'id', 'id2', ... (columns: {list(table.columns)})"
            )
        # id sorts before id2 before id3
        return sorted(detected, key=lambda c: (len(c), c))

    @staticmethod
    def strip_metric(
        columns: Sequence[str], metric: Optional[str] = None
    ) -> List[str]:
        """
        Convert model column names into model identifiers.

        When ``metric`` is given, a trailing ``_<metric>`` (any case) is
        removed. Otherwise a trailing ``_<token>`` shared by every column is
        removed. Identifiers are stripped and lower-cased.

        Parameters
        ----------
        columns : Sequence[str]
            Model column names.
        metric : Optional[str], default=None
            Metric suffix to strip.

        Returns
        -------
        List[str]
            Model identifiers, in the order of ``columns``.
        """
        names = [str(c).strip() for c in columns]

        if metric is not None:
            suffix = f"_{metric}".lower()
            names = [
                n[: -len(suffix)] if n.lower().endswith(suffix) else n
                for n in names
            ]
        elif len(names) > 1 and all("_" in n for n in names):
            tokens = {n.rsplit("_", 1)[1].lower() for n in names}
            heads = [n.rsplit("_", 1)[0] for n in names]
            if len(tokens) == 1 and all(heads):
                logger.debug("Stripping shared metric suffix %r", tokens.pop())
                names = heads

        return [n.strip().lower() for n in names]

    # --------------------------------------------------------------------------

    @staticmethod
    def process_wide_table(
        table: pd.DataFrame,
        id_columns: Optional[Sequence[str]] = None,
        metric: Optional[str] = None,
    ) -> PerformanceTable:
        """
        Validate a wide performance table and reshape it to long form.

        Parameters
        ----------
        table : pd.DataFrame
            One row per resample, resample key columns plus one numeric
            column per model.
        id_columns : Optional[Sequence[str]], default=None
            Resample key columns; auto-detected when None.
        metric : Optional[str], default=None
            Metric suffix to strip from model columns.

        Returns
        -------
        PerformanceTable
            Long table with models in alphabetical order and resamples in
            input order.

        Raises
        ------
        SchemaError
            If key columns are absent, fewer than two models remain, model
            names collide after suffix stripping, a model column is not
            numeric, resample keys repeat, or a model has no observations.
        """
        if not isinstance(table, pd.DataFrame):
            raise SchemaError(
                f"Expected a pandas DataFrame, got {type(table).__name__}"
            )

        keys = InputProcessor.detect_id_columns(table, id_columns)
        model_columns = [c for c in table.columns if c not in keys]
        if len(model_columns) < 2:
            raise SchemaError(
                f"At least 2 model columns are required, got {len(model_columns)}"
            )

        model_ids = InputProcessor.strip_metric(model_columns, metric)
        _check_unique_models(model_columns, model_ids)

        non_numeric = [
            c
            for c in model_columns
            if not pd.api.types.is_numeric_dtype(table[c])
            or pd.api.types.is_bool_dtype(table[c])
        ]
        if non_numeric:
            raise SchemaError(f"Model columns are not numeric: {non_numeric}")

        resample_keys = _composite_keys(table, keys)
        if resample_keys.duplicated().any():
            dupes = sorted(set(resample_keys[resample_keys.duplicated()]))
            raise SchemaError(f"Duplicated resample keys: {dupes}")

        wide = table[model_columns].copy()
        wide.columns = model_ids
        wide.insert(0, "resample_id", resample_keys.to_numpy())
        for key in keys:
            wide[f"__key_{key}"] = table[key].to_numpy()

        long = wide.melt(
            id_vars=["resample_id"] + [f"__key_{k}" for k in keys],
            value_vars=model_ids,
            var_name="model_id",
            value_name="statistic",
        )
        long = long.rename(columns={f"__key_{k}": k for k in keys})

        return _finalize(
            long, resample_order=list(resample_keys), id_columns=tuple(keys)
        )

    # --------------------------------------------------------------------------

    @staticmethod
    def process_long_table(
        table: pd.DataFrame,
        resample_col: str = "resample_id",
        model_col: str = "model_id",
        statistic_col: str = "statistic",
    ) -> PerformanceTable:
        """
        Validate a table that is already in long form.

        Parameters
        ----------
        table : pd.DataFrame
            Long table with one row per (resample, model) observation.
        resample_col, model_col, statistic_col : str
            Column names holding the resample key, model name and statistic.

        Returns
        -------
        PerformanceTable

        Raises
        ------
        SchemaError
            If a column is missing, a (resample, model) pair repeats, the
            statistic is not numeric or fewer than two models are present.
        """
        missing = [
            c
            for c in (resample_col, model_col, statistic_col)
            if c not in table.columns
        ]
        if missing:
            raise SchemaError(f"Long table is missing columns {missing}")
        if not pd.api.types.is_numeric_dtype(table[statistic_col]):
            raise SchemaError(f"Column {statistic_col!r} is not numeric")

        long = pd.DataFrame(
            {
                "resample_id": table[resample_col].astype(str).to_numpy(),
                "model_id": [
                    str(m).strip().lower() for m in table[model_col]
                ],
                "statistic": table[statistic_col].to_numpy(),
            }
        )
        if long.duplicated(["resample_id", "model_id"]).any():
            raise SchemaError(
                "Each (resample, model) pair must appear at most once"
            )
        raw_models = list(pd.unique(table[model_col]))
        _check_unique_models(
            raw_models, [str(m).strip().lower() for m in raw_models]
        )
        if long["model_id"].nunique() < 2:
            raise SchemaError(
                f"At least 2 models are required, got {long['model_id'].nunique()}"
            )

        return _finalize(
            long,
            resample_order=list(pd.unique(long["resample_id"])),
            id_columns=(),
        )


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------


def _composite_keys(table: pd.DataFrame, keys: Iterable[str]) -> pd.Series:
    """Join the resample key columns into one string identifier per row."""
    parts = table[list(keys)].astype(str)
    return parts.agg(RESAMPLE_KEY_SEPARATOR.join, axis=1).reset_index(drop=True)


def _check_unique_models(raw: Sequence, normalized: Sequence[str]) -> None:
    """Raise if distinct raw names collapse onto the same identifier."""
    seen = {}
    for original, name in zip(raw, normalized):
        if name in seen and seen[name] != original:
            raise SchemaError(
                f"Model names {seen[name]!r} and {original!r} both map to "
                f"model id {name!r}"
            )
        seen[name] = original


def _finalize(
    long: pd.DataFrame, resample_order: List[str], id_columns: Tuple[str, ...]
) -> PerformanceTable:
    """Drop missing cells, check coverage and fix the row order."""
    model_ids = tuple(sorted(pd.unique(long["model_id"])))

    statistic = pd.to_numeric(long["statistic"], errors="coerce").astype(float)
    if np.isinf(statistic).any():
        raise SchemaError("Performance statistics must be finite")
    long = long.assign(statistic=statistic)

    n_missing = int(long["statistic"].isna().sum())
    if n_missing:
        logger.info("Dropping %d missing performance cells", n_missing)
        long = long.dropna(subset=["statistic"])

    observed = set(long["model_id"])
    empty = [m for m in model_ids if m not in observed]
    if empty:
        raise SchemaError(f"Models with no observed statistics: {empty}")

    observed_resamples = set(long["resample_id"])
    resample_ids = tuple(r for r in resample_order if r in observed_resamples)
    long = long.assign(
        resample_id=pd.Categorical(
            long["resample_id"], categories=list(resample_ids), ordered=True
        ),
        model_id=pd.Categorical(
            long["model_id"], categories=list(model_ids), ordered=True
        ),
    )
    long = long.sort_values(["resample_id", "model_id"]).reset_index(drop=True)
    long["resample_id"] = long["resample_id"].astype(str)
    long["model_id"] = long["model_id"].astype(str)

    columns = ["resample_id", "model_id", "statistic"] + list(id_columns)
    return PerformanceTable(
        data=long[columns],
        model_ids=model_ids,
        resample_ids=resample_ids,
        id_columns=id_columns,
    )


# ------------------------------------------------------------------------------
# Convenience wrappers
# ------------------------------------------------------------------------------


def normalize_table(
    table: pd.DataFrame,
    id_columns: Optional[Sequence[str]] = None,
    metric: Optional[str] = None,
) -> PerformanceTable:
    """Reshape a wide performance table; see
    :meth:`InputProcessor.process_wide_table`."""
    return InputProcessor.process_wide_table(
        table, id_columns=id_columns, metric=metric
    )


def from_long(table: pd.DataFrame, **kwargs) -> PerformanceTable:
    """Validate a long performance table; see
    :meth:`InputProcessor.process_long_table`."""
    return InputProcessor.process_long_table(table, **kwargs)
