"""Tests for whitelist and rate-limit rule composition."""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from switchyard.annotations.resolver import Directive, Status
from switchyard.core.errors import StructuralError, SwitchyardError
from switchyard.ingress.resources import IngressPath
from switchyard.model.entities import EntityKind, HTTPRequestRule, Listener, Mode, RequestAction
from switchyard.model.store import ProxyModel
from switchyard.security.ratelimit import RateLimitComposer, build_rules, bypass_enabled
from switchyard.security.whitelist import SourceWhitelist

NONE = Directive("whitelist-with-rate-limit")


def whitelist(value: str, status: Status = Status.ADDED) -> Directive:
    return Directive("whitelist", value, "", status)


def bypass(value: str, status: Status = Status.ADDED) -> Directive:
    return Directive("whitelist-with-rate-limit", value, "", status)


@pytest.fixture
def model():
    """Create a model with two HTTP listeners and one TCP listener."""
    model = ProxyModel()
    model.create_entity(EntityKind.LISTENER, Listener(name="http"))
    model.create_entity(EntityKind.LISTENER, Listener(name="https"))
    model.create_entity(EntityKind.LISTENER, Listener(name="ssl", mode=Mode.TCP))
    return model


class TestBypassEnabled:
    """Tests for bypass_enabled."""

    @pytest.mark.parametrize("value", ["on", "true", "1", "enabled"])
    def test_enabled(self, value):
        """Test values that enable the bypass."""
        assert bypass_enabled(value) is True

    @pytest.mark.parametrize("value", ["", "off", "OFF", " Off "])
    def test_disabled(self, value):
        """Test values that leave the bypass off."""
        assert bypass_enabled(value) is False


class TestBuildRules:
    """Tests for build_rules."""

    def test_allow_only(self):
        """Test the rule list without bypass."""
        rules = build_rules("/foo", SourceWhitelist.parse("10.0.0.0/8"), bypass=False)
        assert rules == [
            HTTPRequestRule(RequestAction.ALLOW, "{ path_beg /foo } { src 10.0.0.0/8 }"),
        ]

    def test_deny_then_allow(self):
        """Test that the bypass puts deny before allow."""
        rules = build_rules("/foo", SourceWhitelist.parse("10.0.0.0/8 192.168.0.1"), bypass=True)
        assert [r.action for r in rules] == [RequestAction.DENY, RequestAction.ALLOW]
        assert rules[0].cond_test == "{ path_beg /foo }"
        assert rules[1].cond_test == "{ path_beg /foo } { src 10.0.0.0/8 192.168.0.1 }"

    def test_empty_prefix(self):
        """Test that an empty prefix matches every path."""
        rules = build_rules("", SourceWhitelist.parse("10.0.0.0/8"), bypass=False)
        assert rules[0].cond_test == "{ path_beg / } { src 10.0.0.0/8 }"

    def test_empty_whitelist(self):
        """Test that an empty whitelist yields no rules."""
        assert build_rules("/foo", SourceWhitelist(), bypass=True) == []


class TestCompose:
    """Tests for RateLimitComposer.compose."""

    def test_added_whitelist(self):
        """Test composing a new whitelist."""
        composer = RateLimitComposer()
        path = IngressPath(host="example.com", path_prefix="/foo")
        assert composer.compose(path, Status.ADDED, whitelist("10.0.0.0/8"), NONE) is True
        assert composer.dirty is True
        assert composer.rules_for(path) == [
            HTTPRequestRule(RequestAction.ALLOW, "{ path_beg /foo } { src 10.0.0.0/8 }"),
        ]

    def test_unchanged_inputs(self):
        """Test that nothing is recomputed when inputs did not change."""
        composer = RateLimitComposer()
        path = IngressPath(host="example.com", path_prefix="/foo")
        changed = composer.compose(
            path, Status.UNCHANGED, whitelist("10.0.0.0/8", Status.UNCHANGED), NONE
        )
        assert changed is False
        assert composer.dirty is False
        assert composer.rules_for(path) is None

    def test_deleted_whitelist(self):
        """Test that deleting the whitelist empties the rules and marks dirty."""
        composer = RateLimitComposer()
        path = IngressPath(path_prefix="/foo")
        composer.compose(path, Status.ADDED, whitelist("10.0.0.0/8"), NONE)
        composer.dirty = False
        assert composer.compose(path, Status.UNCHANGED, whitelist("", Status.DELETED), NONE)
        assert composer.rules_for(path) == []
        assert composer.dirty is True

    def test_bypass_change_recomputes(self):
        """Test that a bypass change rebuilds existing rules."""
        composer = RateLimitComposer()
        path = IngressPath(path_prefix="/foo")
        composer.compose(path, Status.ADDED, whitelist("10.0.0.0/8"), NONE)
        changed = composer.compose(
            path,
            Status.UNCHANGED,
            whitelist("10.0.0.0/8", Status.UNCHANGED),
            bypass("on"),
        )
        assert changed is True
        assert [r.action for r in composer.rules_for(path)] == [
            RequestAction.DENY,
            RequestAction.ALLOW,
        ]

    def test_bypass_change_without_rules(self):
        """Test that a bypass change alone does not create rules."""
        composer = RateLimitComposer()
        path = IngressPath(path_prefix="/foo")
        changed = composer.compose(path, Status.UNCHANGED, Directive("whitelist"), bypass("on"))
        assert changed is False

    def test_new_path_with_bypass(self):
        """Test that a new path with a bypass value is composed."""
        composer = RateLimitComposer()
        path = IngressPath(path_prefix="/foo")
        changed = composer.compose(
            path,
            Status.ADDED,
            whitelist("10.0.0.0/8", Status.UNCHANGED),
            bypass("on", Status.UNCHANGED),
        )
        assert changed is True
        assert len(composer.rules_for(path)) == 2

    def test_invalid_whitelist(self):
        """Test that an invalid whitelist is logged and keeps the old rules."""
        composer = RateLimitComposer()
        path = IngressPath(path_prefix="/foo")
        composer.compose(path, Status.ADDED, whitelist("10.0.0.0/8"), NONE)
        composer.dirty = False
        with capture_logs() as logs:
            changed = composer.compose(
                path, Status.UNCHANGED, whitelist("10.0.0.0/33", Status.MODIFIED), NONE
            )
        assert changed is False
        assert composer.dirty is False
        assert len(composer.rules_for(path)) == 1
        assert logs[0]["event"] == "Whitelist rejected"

    def test_key_prefix(self):
        """Test that rule sets are keyed by prefix and path key."""
        composer = RateLimitComposer(prefix="ACL-")
        path = IngressPath(host="a.com", path_prefix="/x")
        composer.compose(path, Status.ADDED, whitelist("10.0.0.0/8"), NONE)
        assert composer._rules.keys() == {"ACL-a.com/x"}
        assert len(composer) == 1

    def test_discard(self):
        """Test forgetting a path."""
        composer = RateLimitComposer()
        path = IngressPath(path_prefix="/foo")
        assert composer.discard(path) is False
        composer.compose(path, Status.ADDED, whitelist("10.0.0.0/8"), NONE)
        composer.dirty = False
        assert composer.discard(path) is True
        assert composer.dirty is True
        assert composer.rules_for(path) is None


class TestCommit:
    """Tests for RateLimitComposer.commit."""

    def test_clean_is_noop(self, model):
        """Test that nothing is written when nothing changed."""
        assert RateLimitComposer().commit(model) is False

    def test_installs_on_http_listeners(self, model):
        """Test that rules go to HTTP listeners in ascending key order."""
        composer = RateLimitComposer()
        composer.compose(IngressPath(path_prefix="/b"), Status.ADDED, whitelist("10.0.0.2"), NONE)
        composer.compose(IngressPath(path_prefix="/a"), Status.ADDED, whitelist("10.0.0.1"), NONE)

        assert composer.commit(model) is True
        assert composer.dirty is False
        for listener in ("http", "https"):
            rules = model.list_entities(EntityKind.HTTP_REQUEST_RULE, parent=listener)
            assert [r.cond_test for r in rules] == [
                "{ path_beg /a } { src 10.0.0.1 }",
                "{ path_beg /b } { src 10.0.0.2 }",
            ]
        assert model.list_entities(EntityKind.HTTP_REQUEST_RULE, parent="ssl") == []

    def test_replaces_existing_rules(self, model):
        """Test that a commit replaces what was installed before."""
        model.create_entity(
            EntityKind.HTTP_REQUEST_RULE,
            HTTPRequestRule(RequestAction.DENY, "{ path_beg /old }"),
            parent="http",
        )
        composer = RateLimitComposer()
        path = IngressPath(path_prefix="/a")
        composer.compose(path, Status.ADDED, whitelist("10.0.0.1"), NONE)
        composer.commit(model)
        composer.compose(path, Status.UNCHANGED, whitelist("", Status.DELETED), NONE)
        composer.commit(model)
        assert model.list_entities(EntityKind.HTTP_REQUEST_RULE, parent="http") == []

    def test_listing_failure(self, model):
        """Test that a listener listing failure is structural."""

        class BrokenModel(ProxyModel):
            def list_entities(self, kind, parent=None):
                raise SwitchyardError("backend store unavailable")

        composer = RateLimitComposer()
        composer.compose(IngressPath(path_prefix="/a"), Status.ADDED, whitelist("10.0.0.1"), NONE)
        with pytest.raises(StructuralError, match="cannot list listeners"):
            composer.commit(BrokenModel())
        assert composer.dirty is True
