"""Tests for the analysis pipeline."""

import pytest

from upgradeguard.analysis import AnalysisPipeline
from upgradeguard.config import UpgradeGuardConfig
from upgradeguard.loader.model import ContractModelLoader
from upgradeguard.models.rules import FindingCategory, Severity
from upgradeguard.rules.registry import RuleRegistry

ONLY_OWNER = [
    {"op": "require", "operands": ["msg.sender", "owner"], "check": "equals"},
    {"op": "placeholder"},
]

UNGUARDED_INITIALIZE = {
    "visibility": "public",
    "parameters": ["_owner"],
    "body": [{"op": "write", "target": "owner", "operands": ["_owner"]}],
}


@pytest.fixture
def pipeline() -> AnalysisPipeline:
    """Create a pipeline with the default configuration."""
    return AnalysisPipeline()


class TestAnalysisPipeline:
    """Test suite for AnalysisPipeline."""

    def test_clean_implementation(self, pipeline, vault_v1_model: dict) -> None:
        """Test a guarded, locked, owner-protected implementation has no findings."""
        result = pipeline.run(ContractModelLoader().load(vault_v1_model))

        assert result.findings == []
        assert result.summary.passed is True
        assert result.exit_code == 0
        assert result.contract_id == "VaultV1"
        assert result.previous_id is None

    def test_clean_upgrade(self, pipeline, vault_v1_model: dict, vault_v2_model: dict) -> None:
        """Test an upgrade that takes its new variable from the gap has no findings."""
        loader = ContractModelLoader()
        result = pipeline.run(loader.load(vault_v2_model), previous=loader.load(vault_v1_model))

        assert result.findings == []
        assert result.previous_id == "VaultV1"

    def test_unguarded_initializer(self, pipeline, make_version) -> None:
        """Test an unguarded initializer writing an unchecked owner gives two findings."""
        version = make_version(
            storage=[{"name": "owner", "type": "address"}],
            functions={"initialize(address)": UNGUARDED_INITIALIZE},
        )
        result = pipeline.run(version)

        assert [(f.category, f.severity) for f in result.findings] == [
            (FindingCategory.INIT_UNPROTECTED, Severity.CRITICAL),
            (FindingCategory.INIT_UNVALIDATED_PARAM, Severity.MEDIUM),
        ]
        assert result.summary.critical_count == 1
        assert result.summary.medium_count == 1
        assert result.exit_code == 1

    def test_inserted_slot(self, pipeline, make_layout) -> None:
        """Test a slot inserted in the middle shifts the following one."""
        old = make_layout("V1", ("a", "uint256"), ("b", "uint256"))
        new = make_layout("V2", ("a", "uint256"), ("NEW", "uint256"), ("b", "uint256"))
        result = pipeline.run(new, previous=old)

        assert len(result.findings) == 1
        assert result.findings[0].category == FindingCategory.STORAGE_SHIFT
        assert result.findings[0].location.slot == "b"

    def test_empty_upgrade_guard(self, pipeline, make_version) -> None:
        """Test an empty hook behind a no-op modifier is an empty guard."""
        version = make_version(
            modifiers={"onlyOwner": {"body": [{"op": "placeholder"}]}},
            functions={
                "upgradeTo(address)": {
                    "visibility": "external",
                    "body": [{"op": "call", "target": "_authorizeUpgrade"}],
                },
                "_authorizeUpgrade(address)": {"visibility": "internal", "modifiers": ["onlyOwner"]},
            },
        )
        result = pipeline.run(version)

        assert [(f.category, f.severity) for f in result.findings] == [
            (FindingCategory.UPGRADE_EMPTY_GUARD, Severity.CRITICAL)
        ]

    def test_hook_without_caller_check(self, pipeline, make_version) -> None:
        """Test a hook that only validates the new implementation leaves the upgrade open."""
        version = make_version(
            functions={
                "upgradeTo(address)": {
                    "visibility": "external",
                    "parameters": ["newImplementation"],
                    "body": [{"op": "call", "target": "_authorizeUpgrade"}],
                },
                "_authorizeUpgrade(address)": {
                    "visibility": "internal",
                    "parameters": ["newImplementation"],
                    "body": [
                        {"op": "require", "operands": ["newImplementation"], "check": "nonzero"}
                    ],
                },
            },
        )
        result = pipeline.run(version)

        assert [(f.category, f.severity, f.location.function) for f in result.findings] == [
            (FindingCategory.UPGRADE_UNAUTHORIZED, Severity.CRITICAL, "_authorizeUpgrade(address)")
        ]
        assert result.exit_code == 1

    def test_owner_takeover_chain(self, pipeline, make_version) -> None:
        """Test the authorization phase sees the initialization findings."""
        version = make_version(
            storage=[{"name": "owner", "type": "address"}],
            modifiers={"onlyOwner": {"body": ONLY_OWNER}},
            functions={
                "initialize(address)": UNGUARDED_INITIALIZE,
                "upgradeTo(address)": {"visibility": "external", "modifiers": ["onlyOwner"]},
            },
        )
        result = pipeline.run(version)

        assert [f.rule_id for f in result.findings] == ["UG-001", "UG-203", "UG-003"]

    def test_no_storage_phase_without_previous(self, pipeline, make_layout) -> None:
        """Test a single version is never diffed."""
        result = pipeline.run(make_layout("V1", ("a", "uint256")))
        assert result.findings == []

    def test_idempotent(self, pipeline, make_version, make_layout) -> None:
        """Test repeated runs give identical ordered findings."""
        version = make_version(
            storage=[{"name": "owner", "type": "address"}, {"name": "b", "type": "uint256"}],
            functions={"initialize(address)": UNGUARDED_INITIALIZE},
        )
        previous = make_layout("Vault", ("b", "uint256"))

        first = pipeline.run(version, previous=previous)
        second = pipeline.run(version, previous=previous)

        assert first.findings
        assert first.findings == second.findings

    def test_run_context_accumulates(self, pipeline, make_version) -> None:
        """Test the final context carries every phase's findings."""
        version = make_version(
            storage=[{"name": "owner", "type": "address"}],
            functions={"initialize(address)": UNGUARDED_INITIALIZE},
        )
        context = pipeline.run_context(version)

        assert context.version is version
        assert len(context.findings_of(FindingCategory.INIT_UNPROTECTED)) == 1

    def test_disabled_rules(self, make_version) -> None:
        """Test disabled rules are not run by any phase."""
        pipeline = AnalysisPipeline(UpgradeGuardConfig(disabled_rules=frozenset({"UG-003"})))
        version = make_version(
            storage=[{"name": "owner", "type": "address"}],
            functions={"initialize(address)": UNGUARDED_INITIALIZE},
        )
        assert [f.rule_id for f in pipeline.run(version).findings] == ["UG-001"]

    def test_fail_on(self, make_version) -> None:
        """Test the failing severities are configurable."""
        pipeline = AnalysisPipeline(
            UpgradeGuardConfig(
                disabled_rules=frozenset({"UG-001"}), fail_on=frozenset({Severity.MEDIUM})
            )
        )
        version = make_version(
            storage=[{"name": "owner", "type": "address"}],
            functions={"initialize(address)": UNGUARDED_INITIALIZE},
        )
        result = pipeline.run(version)

        assert [f.severity for f in result.findings] == [Severity.MEDIUM]
        assert result.summary.passed is False

    def test_empty_registry(self, make_version) -> None:
        """Test a pipeline reads its rules from the given registry."""
        pipeline = AnalysisPipeline(rules=RuleRegistry())
        version = make_version(
            storage=[{"name": "owner", "type": "address"}],
            functions={"initialize(address)": UNGUARDED_INITIALIZE},
        )
        assert pipeline.run(version).findings == []
