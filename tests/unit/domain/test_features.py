"""Tests for flags, feature sets and target presets."""

from __future__ import annotations

import pytest

from streamscout.domain.entities.features import (
    TARGETS,
    FeatureSet,
    Flag,
    get_target_features,
    is_compatible,
)


class TestIsCompatible:
    def test_no_flags_always_compatible(self) -> None:
        assert is_compatible([], FeatureSet()) is True

    def test_subset_is_compatible(self) -> None:
        features = FeatureSet.of(Flag.CORS_ALLOWED, Flag.IP_LOCKED)
        assert is_compatible([Flag.CORS_ALLOWED], features) is True

    def test_missing_flag_is_incompatible(self) -> None:
        features = FeatureSet.of(Flag.CORS_ALLOWED)
        assert is_compatible([Flag.CORS_ALLOWED, "ip-locked"], features) is False

    def test_accepts_plain_strings_and_members(self) -> None:
        features = FeatureSet.of("cors-allowed")
        assert is_compatible([Flag.CORS_ALLOWED], features) is True
        assert Flag.CORS_ALLOWED in features
        assert "cors-allowed" in features


class TestTargetFeatures:
    def test_browser_is_cors_only_plus_proxy_blocked(self) -> None:
        features = get_target_features("browser")
        assert features.allowed == {"cors-allowed", "proxy-blocked"}

    @pytest.mark.parametrize("target", ["browser-extension", "native", "any"])
    def test_non_browser_targets_tolerate_cloudflare(self, target: str) -> None:
        assert "cf-blocked" in get_target_features(target)  # type: ignore[arg-type]

    def test_consistent_ip_enables_ip_locked(self) -> None:
        assert "ip-locked" not in get_target_features("native")
        assert "ip-locked" in get_target_features("native", consistent_ip=True)

    def test_proxying_excludes_proxy_blocked(self) -> None:
        features = get_target_features("native", proxy_streams=True)
        assert "proxy-blocked" not in features

    def test_unknown_target_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown target"):
            get_target_features("toaster")  # type: ignore[arg-type]

    def test_every_target_allows_cors(self) -> None:
        for target in TARGETS:
            assert Flag.CORS_ALLOWED in get_target_features(target)

    def test_union_grows_allowed(self) -> None:
        merged = FeatureSet.of("a").union(FeatureSet.of("b"))
        assert merged.allowed == {"a", "b"}

    def test_only_browser_is_cors_restricted(self) -> None:
        assert get_target_features("browser").cors_restricted
        for target in ("browser-extension", "native", "any"):
            assert not get_target_features(target).cors_restricted  # type: ignore[arg-type]
