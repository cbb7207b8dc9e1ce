"""Tests for the outcome transform registry."""

import numpy as np
import pytest

from perfbayes.core import transforms
from perfbayes.core.transforms import (
    Transform,
    available_transforms,
    get_transform,
    register_transform,
)
from perfbayes.errors import DomainError


@pytest.fixture
def scratch_transform():
    """Register a throwaway transform and remove it afterwards."""
    name = "sqrt_scratch"
    yield name
    transforms._TRANSFORM_REGISTRY.pop(name, None)


def test_builtins_are_registered():
    assert {"identity", "log", "logit", "fisher_z"} <= set(
        available_transforms()
    )


@pytest.mark.parametrize(
    "name, values",
    [
        ("identity", [-3.0, 0.0, 2.5]),
        ("log", [0.01, 1.0, 250.0]),
        ("logit", [0.01, 0.5, 0.99]),
        ("fisher_z", [-0.9, 0.0, 0.75]),
    ],
)
def test_inverse_undoes_forward(name, values):
    transform = get_transform(name)
    values = np.array(values)
    np.testing.assert_allclose(transform.invert(transform.apply(values)), values)


@pytest.mark.parametrize(
    "name, bad",
    [
        ("log", [1.0, 0.0]),
        ("log", [-2.0]),
        ("logit", [0.5, 1.0]),
        ("logit", [0.0]),
        ("fisher_z", [-1.0, 0.2]),
    ],
)
def test_domain_violations_raise(name, bad):
    with pytest.raises(DomainError, match=name):
        get_transform(name).apply(bad)


def test_identity_accepts_everything():
    get_transform("identity").check_domain([-1e6, 0.0, 1e6])


def test_lookup_rules():
    assert get_transform(None).name == "identity"
    assert get_transform("LOG") is get_transform("log")
    custom = Transform("custom", forward=np.sqrt, inverse=np.square)
    assert get_transform(custom) is custom
    with pytest.raises(KeyError, match="Unknown transform"):
        get_transform("boxcox")


def test_register_transform(scratch_transform):
    registered = register_transform(
        scratch_transform,
        forward=np.sqrt,
        inverse=np.square,
        domain=lambda x: x >= 0,
        domain_description="non-negative statistics",
    )
    assert get_transform(scratch_transform) is registered
    np.testing.assert_allclose(registered.apply([4.0, 9.0]), [2.0, 3.0])
    with pytest.raises(DomainError, match="non-negative"):
        registered.apply([-1.0])

    with pytest.raises(ValueError, match="already registered"):
        register_transform(scratch_transform, np.sqrt, np.square)
    replaced = register_transform(
        scratch_transform, np.sqrt, np.square, overwrite=True
    )
    assert get_transform(scratch_transform) is replaced
