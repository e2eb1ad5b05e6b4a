from __future__ import annotations

from ownership.domain.models import (
    UNASSIGNED_OWNER,
    Application,
    OwnerDescriptor,
    OwnerKind,
    RawOwnerRef,
    StructuredOwnerRef,
    UserIdentity,
)
from ownership.domain.ownership.aggregator import OwnershipAggregator, is_direct_owner
from ownership.domain.ownership.enricher import DisplayNameEnricher


class _CountingCatalog:
    def __init__(self, entities: dict[str, dict] | None = None) -> None:
        self.entities = entities or {}
        self.calls: list[str] = []

    def get_entity_by_ref(self, entity_ref: str, timeout: float | None = None):
        self.calls.append(entity_ref)
        return self.entities.get(entity_ref)


def _user(name: str, groups: list[str] | None = None) -> UserIdentity:
    refs = [f"user:default/{name}", *[f"group:default/{g}" for g in groups or []]]
    return UserIdentity(user_ref=f"user:default/{name}", ownership_refs=tuple(refs))


def _app(name: str, owner: str | None = None, annotations: dict | None = None) -> Application:
    return Application(name=name, owner=RawOwnerRef(owner) if owner else None, annotations=annotations or {})


def _assert_exclusive(snapshot) -> None:
    grouped = [name for names in snapshot.group_owned.values() for name in names]
    assert not set(grouped) & snapshot.user_owned
    assert len(grouped) == len(set(grouped))
    for name in [*grouped, *snapshot.user_owned]:
        assert name in snapshot.owner_by_application


def test_direct_ownership():
    snapshot = OwnershipAggregator().resolve(
        _user("john.doe"),
        [
            _app("app1", "user:default/john.doe"),
            _app("app2", "group:default/platform-team"),
            _app("app3", "user:default/jane.doe"),
        ],
    )
    assert snapshot.user_owned == frozenset({"app1"})
    assert snapshot.group_owned == {}
    assert snapshot.owner_by_application["app3"] == OwnerDescriptor(OwnerKind.USER, "jane.doe", "jane.doe")
    _assert_exclusive(snapshot)


def test_group_ownership_buckets_by_group_name():
    snapshot = OwnershipAggregator().resolve(
        _user("john.doe", ["platform-team", "frontend"]),
        [
            _app("app1", "group:default/platform-team"),
            _app("app2", "Group:default/platform-team"),
            _app("app3", "group:default/backend-team"),
            _app("app4", "frontend"),
        ],
    )
    assert snapshot.user_owned == frozenset()
    assert snapshot.group_owned == {
        "platform-team": frozenset({"app1", "app2"}),
        "frontend": frozenset({"app4"}),
    }
    assert snapshot.user_groups == frozenset({"platform-team", "frontend"})
    assert not snapshot.is_owned("app3")
    _assert_exclusive(snapshot)


def test_unassigned_applications_are_recorded_but_not_bucketed():
    snapshot = OwnershipAggregator().resolve(
        _user("john.doe", ["unassigned"]),
        [_app("orphan"), Application(name="blank", owner=RawOwnerRef("  "))],
    )
    assert snapshot.owner_by_application["orphan"] == UNASSIGNED_OWNER
    assert snapshot.owner_by_application["blank"] == UNASSIGNED_OWNER
    assert snapshot.user_owned == frozenset()
    assert snapshot.group_owned == {}


def test_bare_user_name_is_treated_as_group():
    snapshot = OwnershipAggregator().resolve(
        _user("john.doe", ["platform-team"]),
        [_app("app1", "john.doe"), _app("app2", "platform-team")],
    )
    assert snapshot.user_owned == frozenset()
    assert snapshot.group_owned == {"platform-team": frozenset({"app2"})}


def test_name_collision_without_ownership_claim_is_not_ownership():
    user = UserIdentity(user_ref="user:default/alice", ownership_refs=("group:default/team",))
    snapshot = OwnershipAggregator().resolve(user, [_app("app1", "user:default/alice")])
    assert snapshot.user_owned == frozenset()


def test_claim_without_name_match_is_not_ownership():
    user = UserIdentity(user_ref="user:default/alice", ownership_refs=("user:default/alice", "user:default/bob"))
    snapshot = OwnershipAggregator().resolve(user, [_app("app1", "user:default/bob")])
    assert snapshot.user_owned == frozenset()


def test_claim_matched_by_tail_segment_in_other_namespace():
    user = UserIdentity(user_ref="user:default/alice", ownership_refs=("user:corp/alice",))
    snapshot = OwnershipAggregator().resolve(user, [_app("app1", "user:other/alice")])
    assert snapshot.user_owned == frozenset({"app1"})


def test_is_direct_owner_verbatim_user_ref():
    user = UserIdentity(user_ref="user:default/alice", ownership_refs=("user:default/alice",))
    descriptor = OwnerDescriptor(OwnerKind.USER, "alice", "Alice")
    assert is_direct_owner(user, descriptor, "user:default/alice")


def test_structured_owner_is_normalized_before_parsing():
    snapshot = OwnershipAggregator().resolve(
        _user("alice", ["platform-team"]),
        [
            Application(name="app1", owner=StructuredOwnerRef(name="alice", kind="user", namespace="default")),
            Application(name="app2", owner=StructuredOwnerRef(name="platform-team", kind="group")),
        ],
    )
    assert snapshot.user_owned == frozenset({"app1"})
    assert snapshot.group_owned == {"platform-team": frozenset({"app2"})}


def test_enrichment_updates_display_name_once_per_owner():
    catalog = _CountingCatalog({"Group:default/platform-team": {"metadata": {"title": "Platform Team"}}})
    aggregator = OwnershipAggregator(DisplayNameEnricher(catalog))
    snapshot = aggregator.resolve(
        _user("john.doe", ["platform-team"]),
        [
            _app("app1", "group:default/platform-team"),
            _app("app2", "platform-team"),
            _app("app3", "user:default/jane"),
        ],
    )
    assert snapshot.owner_by_application["app1"].display_name == "Platform Team"
    assert snapshot.owner_by_application["app2"].display_name == "Platform Team"
    assert snapshot.owner_by_application["app3"].display_name == "jane"
    assert catalog.calls == ["Group:default/platform-team", "User:default/jane"]


def test_enrichment_failure_does_not_block_ownership():
    class _Broken:
        def get_entity_by_ref(self, entity_ref: str, timeout: float | None = None):
            raise RuntimeError("catalog down")

    snapshot = OwnershipAggregator(DisplayNameEnricher(_Broken())).resolve(
        _user("alice", ["team"]),
        [_app("app1", "user:default/alice"), _app("app2", "group:default/team")],
    )
    assert snapshot.user_owned == frozenset({"app1"})
    assert snapshot.group_owned == {"team": frozenset({"app2"})}


def test_enrich_budget_exhaustion_skips_remaining_lookups():
    now = [0.0]

    class _SlowCatalog(_CountingCatalog):
        def get_entity_by_ref(self, entity_ref: str, timeout: float | None = None):
            now[0] += 3.0
            return super().get_entity_by_ref(entity_ref, timeout)

    catalog = _SlowCatalog()

    def clock() -> float:
        return now[0]

    aggregator = OwnershipAggregator(
        DisplayNameEnricher(catalog, clock=clock),
        enrich_budget_seconds=5.0,
        clock=clock,
    )
    snapshot = aggregator.resolve(
        _user("alice", ["a", "b", "c"]),
        [_app("app1", "group:default/a"), _app("app2", "group:default/b"), _app("app3", "group:default/c")],
    )
    assert catalog.calls == ["Group:default/a", "Group:default/b"]
    assert set(snapshot.group_owned) == {"a", "b", "c"}


def test_resolve_is_idempotent():
    user = _user("alice", ["team"])
    apps = [_app("app1", "user:default/alice"), _app("app2", "group:default/team"), _app("app3")]
    aggregator = OwnershipAggregator()
    assert aggregator.resolve(user, apps) == aggregator.resolve(user, apps)


def test_duplicate_application_name_keeps_last_owner():
    snapshot = OwnershipAggregator().resolve(
        _user("alice", ["team"]),
        [_app("app1", "user:default/alice"), _app("app1", "group:default/team")],
    )
    assert snapshot.user_owned == frozenset()
    assert snapshot.group_owned == {"team": frozenset({"app1"})}
    _assert_exclusive(snapshot)
