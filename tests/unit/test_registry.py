"""Tests for the hook registry."""

import pytest

from grappling_hook.config import HookOptions, Qualifiers
from grappling_hook.errors import (
    InvalidQualifierError,
    NotSupportedError,
    UnqualifiedHookError,
)
from grappling_hook.registry import HookRegistry


def first():
    pass


def second():
    pass


@pytest.fixture
def registry() -> HookRegistry:
    """Strict registry with the save action allowed."""
    reg = HookRegistry()
    reg.allow("save")
    return reg


class TestParse:
    """Tests for hook name parsing."""

    def test_qualified(self) -> None:
        """Test qualified names split into qualifier and action."""
        assert HookRegistry().parse("pre:save") == ("pre", "save")
        assert HookRegistry().parse("post:save") == ("post", "save")

    def test_unqualified(self) -> None:
        """Test unqualified names have no qualifier."""
        assert HookRegistry().parse("save") == (None, "save")

    def test_action_with_colon(self) -> None:
        """Test only the first colon separates the qualifier."""
        assert HookRegistry().parse("pre:save:draft") == ("pre", "save:draft")

    def test_unknown_qualifier(self) -> None:
        """Test unknown qualifiers are rejected."""
        with pytest.raises(InvalidQualifierError) as exc_info:
            HookRegistry().parse("during:save")

        assert exc_info.value.qualifier == "during"
        assert exc_info.value.allowed == ("pre", "post")

    def test_missing_action(self) -> None:
        """Test a qualifier without action is rejected."""
        with pytest.raises(InvalidQualifierError):
            HookRegistry().parse("pre:")

    def test_non_string(self) -> None:
        """Test non-string names raise TypeError."""
        with pytest.raises(TypeError):
            HookRegistry().parse(42)  # type: ignore[arg-type]

    def test_custom_qualifiers(self) -> None:
        """Test configured qualifier names replace pre/post."""
        reg = HookRegistry(HookOptions(qualifiers=Qualifiers(pre="before", post="after")))

        assert reg.parse("before:save") == ("before", "save")
        assert reg.expand("save") == ["before:save", "after:save"]
        with pytest.raises(InvalidQualifierError):
            reg.parse("pre:save")


class TestAllow:
    """Tests for allowing hooks."""

    def test_unqualified_allows_both(self) -> None:
        """Test an action allows both qualifiers."""
        reg = HookRegistry()
        reg.allow("save")

        assert reg.is_allowed("pre:save")
        assert reg.is_allowed("post:save")
        assert not reg.is_allowed("pre:remove")

    def test_qualified_allows_one(self) -> None:
        """Test a qualified name allows only that hook."""
        reg = HookRegistry()
        reg.allow("pre:save")

        assert reg.is_allowed("pre:save")
        assert not reg.is_allowed("post:save")

    def test_lenient_allows_everything(self) -> None:
        """Test lenient registries accept any qualified hook."""
        reg = HookRegistry(HookOptions(strict=False))
        assert reg.is_allowed("pre:anything")

    def test_is_allowed_requires_qualifier(self) -> None:
        """Test is_allowed rejects unqualified names."""
        with pytest.raises(UnqualifiedHookError):
            HookRegistry().is_allowed("save")


class TestMiddleware:
    """Tests for adding, reading and removing middleware."""

    def test_add_and_get(self, registry: HookRegistry) -> None:
        """Test middleware is kept in insertion order."""
        registry.add("pre:save", [first, second])
        registry.add("pre:save", [first])

        assert registry.get("pre:save") == [first, second, first]
        assert registry.has("pre:save")
        assert not registry.has("post:save")

    def test_get_returns_copy(self, registry: HookRegistry) -> None:
        """Test changing a returned list does not change the registry."""
        registry.add("pre:save", [first])
        registry.get("pre:save").append(second)

        assert registry.get("pre:save") == [first]

    def test_add_undeclared(self) -> None:
        """Test adding to an undeclared hook fails in strict mode."""
        with pytest.raises(NotSupportedError) as exc_info:
            HookRegistry().add("pre:save", [first])

        assert exc_info.value.hook == "pre:save"
        assert "allow_hooks('pre:save')" in str(exc_info.value)

    def test_add_unqualified(self, registry: HookRegistry) -> None:
        """Test adding to an unqualified name fails."""
        with pytest.raises(UnqualifiedHookError):
            registry.add("save", [first])

    def test_remove_all(self, registry: HookRegistry) -> None:
        """Test removing without name clears every hook."""
        registry.add("pre:save", [first])
        registry.add("post:save", [second])

        registry.remove()

        assert registry.hook_counts == {}
        assert registry.is_allowed("pre:save")

    def test_remove_action(self, registry: HookRegistry) -> None:
        """Test removing an action clears both qualifiers."""
        registry.allow("pre:load")
        registry.add("pre:save", [first])
        registry.add("post:save", [first])
        registry.add("pre:load", [first])

        registry.remove("save")

        assert registry.hook_counts == {"pre:load": 1}

    def test_remove_hook(self, registry: HookRegistry) -> None:
        """Test removing a qualified hook clears only that hook."""
        registry.add("pre:save", [first])
        registry.add("post:save", [first])

        registry.remove("pre:save")

        assert registry.get("pre:save") == []
        assert registry.get("post:save") == [first]

    def test_remove_specific(self, registry: HookRegistry) -> None:
        """Test removing given middleware drops every registration of it."""
        registry.add("pre:save", [first, second, first])

        registry.remove("pre:save", [first])

        assert registry.get("pre:save") == [second]

    def test_remove_specific_needs_qualified_name(self, registry: HookRegistry) -> None:
        """Test middleware cannot be removed without a qualified name."""
        with pytest.raises(UnqualifiedHookError):
            registry.remove("save", [first])
        with pytest.raises(UnqualifiedHookError):
            registry.remove(None, [first])

    def test_discard_by_identity(self, registry: HookRegistry) -> None:
        """Test discard removes a callable by identity."""
        registry.add("pre:save", [first, second])

        registry.discard("pre:save", first)
        registry.discard("post:save", first)

        assert registry.get("pre:save") == [second]

    def test_hook_counts(self, registry: HookRegistry) -> None:
        """Test counts only list hooks with middleware."""
        registry.add("pre:save", [first, second])
        registry.add("post:save", [first])
        registry.remove("post:save", [first])

        assert registry.hook_counts == {"pre:save": 2}


class TestProperties:
    """Tests for registry properties."""

    def test_defaults(self) -> None:
        """Test default options."""
        reg = HookRegistry()

        assert reg.strict is True
        assert reg.qualifiers == ("pre", "post")
        assert reg.options == HookOptions()
