"""Pytest configuration and fixtures for formschema tests."""

import logging

import pytest
import structlog

from formschema.config import get_settings
from formschema.validation import ValidatorContext, ValidatorRegistry, field, schema


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are cached; drop the cache around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def restore_logging():
    """Snapshot structlog and root-logger state and restore it afterwards."""
    saved = structlog.get_config()
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    structlog.configure(**saved)
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def registry():
    """Isolated registry so custom validators never leak between tests."""
    return ValidatorRegistry()


@pytest.fixture
def ctx():
    """Factory for validator contexts rooted at a given input."""

    def _ctx(path="value", root=None, registry=None):
        return ValidatorContext(path=path, root=root if root is not None else {}, parent=None, registry=registry)

    return _ctx


@pytest.fixture
def signup_schema():
    """Email/age form with a soft upper bound on age."""
    return schema({
        "email": field.string().email("Invalid email address").required(),
        "age": field.number().min(18, "Must be at least 18").max_soft(120, "Please double-check the age"),
    })


@pytest.fixture
def order_schema():
    """Nested object and array-of-object schema."""
    return schema({
        "customer": field.object({
            "name": field.string().required(),
            "email": field.string().email(),
        }).required(),
        "items": field.array(field.object({
            "sku": field.string().required(),
            "qty": field.number().integer().positive(),
        })).min(1).required(),
    })
