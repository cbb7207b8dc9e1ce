"""
Enumeration of the model pairs to contrast.
"""

from itertools import combinations, product
from typing import Iterable, List, Optional, Sequence, Tuple, Union

ModelSubset = Optional[Union[str, Iterable[str]]]


def _resolve(model_id: str, model_ids: Sequence[str]) -> Optional[str]:
    """Exact match first, then a unique case-insensitive match."""
    if model_id in model_ids:
        return model_id
    folded = [m for m in model_ids if m.lower() == model_id.lower()]
    return folded[0] if len(folded) == 1 else None


def _as_ids(
    subset: ModelSubset, model_ids: Sequence[str], name: str
) -> Optional[List[str]]:
    """Resolve a subset argument into a list of known model ids."""
    if subset is None:
        return None
    if isinstance(subset, str):
        subset = [subset]
    ids, unknown = [], []
    for requested in subset:
        requested = str(requested).strip()
        model_id = _resolve(requested, model_ids)
        if model_id is None:
            unknown.append(requested)
        elif model_id not in ids:
            ids.append(model_id)
    if unknown:
        raise KeyError(
            f"{name} names unknown models {unknown}; available models "
            f"are {list(model_ids)}"
        )
    return ids


def enumerate_pairs(
    model_ids: Sequence[str],
    subset_a: ModelSubset = None,
    subset_b: ModelSubset = None,
) -> List[Tuple[str, str]]:
    """
    Model pairs ``(a, b)`` to contrast as ``a - b``.

    Parameters
    ----------
    model_ids : sequence of str
        Models available in the posterior draws, in model order.
    subset_a, subset_b : str or iterable of str, optional
        - both None: every unordered pair, ``a`` before ``b`` in model order;
        - both given: the cross product ``subset_a x subset_b`` in the order
          given; the subsets must be disjoint;
        - only ``subset_a``: ``subset_a`` against every other model.

        Ids match ``model_ids`` exactly, or case-insensitively when that
        match is unique; pairs always carry the ids as stored.

    Returns
    -------
    list of tuple
        Ordered ``(model_a, model_b)`` pairs.

    Raises
    ------
    KeyError
        If a subset names an unknown model.
    ValueError
        If the subsets overlap, a subset is empty, or only ``subset_b`` is
        given.
    """
    model_ids = list(model_ids)
    ids_a = _as_ids(subset_a, model_ids, "subset_a")
    ids_b = _as_ids(subset_b, model_ids, "subset_b")

    if ids_a is None and ids_b is None:
        return list(combinations(model_ids, 2))
    if ids_a is None:
        raise ValueError("subset_b requires subset_a")

    if ids_b is None:
        ids_b = [m for m in model_ids if m not in ids_a]

    for name, ids in (("subset_a", ids_a), ("subset_b", ids_b)):
        if not ids:
            raise ValueError(f"{name} must name at least one model")

    overlap = sorted(set(ids_a) & set(ids_b))
    if overlap:
        raise ValueError(
            f"subset_a and subset_b must be disjoint; both contain {overlap}"
        )

    return list(product(ids_a, ids_b))
