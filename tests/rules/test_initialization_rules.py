"""Tests for the initialization rules."""

import pytest

from upgradeguard.analysis import AnalysisContext, InitializationAnalyzer
from upgradeguard.config import UpgradeGuardConfig
from upgradeguard.models.rules import FindingCategory, Severity
from upgradeguard.rules.initialization import (
    RULE_UG_001,
    RULE_UG_002,
    RULE_UG_003,
    RULE_UG_004,
    RULE_UG_005,
    rule_ug001,
    rule_ug002,
    rule_ug003,
    rule_ug004,
    rule_ug005,
)

INITIALIZER_GUARD = [
    {"op": "require", "operands": ["initialized"], "check": "not"},
    {"op": "write", "target": "initialized", "operands": ["true"]},
    {"op": "placeholder"},
]

ONLY_OWNER = [
    {"op": "require", "operands": ["msg.sender", "owner"], "check": "equals"},
    {"op": "placeholder"},
]

STORAGE = [
    {"name": "initialized", "type": "bool"},
    {"name": "owner", "type": "address"},
    {"name": "feeBps", "type": "uint256"},
]


def initialize(body, modifiers=(), parameters=("_owner",)) -> dict:
    return {
        "visibility": "public",
        "modifiers": list(modifiers),
        "parameters": list(parameters),
        "body": body,
    }


def check(rule, version):
    return rule.check(AnalysisContext(version=version))


class TestRuleMetadata:
    """Test suite for initialization rule metadata."""

    def test_rules_defined(self) -> None:
        """Test that all rules are properly defined."""
        assert RULE_UG_001.severity == Severity.CRITICAL
        assert RULE_UG_001.finding_category == FindingCategory.INIT_UNPROTECTED
        assert RULE_UG_002.severity == Severity.HIGH
        assert RULE_UG_002.finding_category == FindingCategory.INIT_REENTRY
        assert RULE_UG_003.severity == Severity.MEDIUM
        assert RULE_UG_003.finding_category == FindingCategory.INIT_UNVALIDATED_PARAM
        assert RULE_UG_004.severity == Severity.CRITICAL
        assert RULE_UG_005.severity == Severity.MEDIUM
        assert RULE_UG_005.finding_category == FindingCategory.INIT_UNPROTECTED


class TestUnprotectedInitializer:
    """Test suite for UG-001."""

    def test_unguarded_initializer(self, make_version) -> None:
        """Test an initializer without a guard is reported."""
        version = make_version(
            storage=STORAGE,
            functions={
                "initialize(address)": initialize(
                    [{"op": "write", "target": "owner", "operands": ["_owner"]}]
                )
            },
        )
        findings = check(rule_ug001, version)

        assert len(findings) == 1
        assert findings[0].category == FindingCategory.INIT_UNPROTECTED
        assert findings[0].severity == Severity.CRITICAL
        assert findings[0].location.function == "initialize(address)"

    def test_guard_modifier(self, make_version) -> None:
        """Test a check-and-set modifier protects the initializer."""
        version = make_version(
            storage=STORAGE,
            modifiers={"once": {"body": INITIALIZER_GUARD}},
            functions={"initialize(address)": initialize([], modifiers=["once"])},
        )
        assert check(rule_ug001, version) == []

    def test_inline_check_and_set(self, make_version) -> None:
        """Test an inline check-and-set against a flag slot protects the initializer."""
        version = make_version(
            storage=STORAGE,
            functions={
                "initialize()": initialize(
                    [
                        {"op": "require", "operands": ["initialized"], "check": "not"},
                        {"op": "write", "target": "initialized", "operands": ["true"]},
                    ],
                    parameters=(),
                )
            },
        )
        assert check(rule_ug001, version) == []

    def test_guard_through_internal_call(self, make_version) -> None:
        """Test a check-and-set in a called helper protects the initializer."""
        version = make_version(
            storage=STORAGE,
            functions={
                "_lock()": {
                    "visibility": "internal",
                    "body": [
                        {"op": "require", "operands": ["initialized"], "check": "not"},
                        {"op": "write", "target": "initialized", "operands": ["true"]},
                    ],
                },
                "initialize(address)": initialize([{"op": "call", "target": "_lock"}]),
            },
        )
        assert check(rule_ug001, version) == []

    def test_setter_is_not_a_guard(self, make_version) -> None:
        """Test a require-then-write on a non-flag slot is not a one-time guard."""
        version = make_version(
            storage=STORAGE,
            functions={
                "initialize(address)": initialize(
                    [
                        {"op": "require", "operands": ["owner", "_owner"], "check": "generic"},
                        {"op": "write", "target": "owner", "operands": ["_owner"]},
                    ]
                )
            },
        )
        assert len(check(rule_ug001, version)) == 1

    def test_access_check_is_not_a_guard(self, make_version) -> None:
        """Test an owner check does not make an initializer one-time."""
        version = make_version(
            storage=STORAGE,
            modifiers={"onlyOwner": {"body": ONLY_OWNER}},
            functions={"reinitialize(address)": initialize([], modifiers=["onlyOwner"])},
        )
        assert len(check(rule_ug001, version)) == 1

    def test_constructor_is_one_time(self, make_version) -> None:
        """Test constructors are never reported."""
        version = make_version(
            storage=STORAGE,
            functions={
                "constructor(address)": {
                    "kind": "constructor",
                    "visibility": "public",
                    "parameters": ["_owner"],
                    "body": [{"op": "write", "target": "owner", "operands": ["_owner"]}],
                }
            },
        )
        assert check(rule_ug001, version) == []

    def test_proxy_implementation_left_to_ug004(self, make_version) -> None:
        """Test proxy implementations are reported by UG-004 instead."""
        version = make_version(
            storage=STORAGE, functions={"initialize(address)": initialize([])}, proxy=True
        )
        assert check(rule_ug001, version) == []
        assert len(check(rule_ug004, version)) == 1


class TestInitializerReentry:
    """Test suite for UG-002."""

    def test_public_setter_reached_from_initializer(self, make_version) -> None:
        """Test a public owner setter called by a guarded initializer is reported."""
        version = make_version(
            storage=STORAGE,
            modifiers={"initializer": {"body": INITIALIZER_GUARD}},
            functions={
                "initialize(address)": initialize(
                    [{"op": "call", "target": "setOwner", "operands": ["_owner"]}],
                    modifiers=["initializer"],
                ),
                "setOwner(address)": {
                    "visibility": "public",
                    "parameters": ["newOwner"],
                    "body": [{"op": "write", "target": "owner", "operands": ["newOwner"]}],
                },
            },
        )
        findings = check(rule_ug002, version)

        assert len(findings) == 1
        assert findings[0].category == FindingCategory.INIT_REENTRY
        assert findings[0].severity == Severity.HIGH
        assert findings[0].location.function == "setOwner(address)"
        assert findings[0].context["slots"] == ["owner"]

    def test_internal_helper(self, make_version) -> None:
        """Test internal helpers cannot be called again and are not reported."""
        version = make_version(
            storage=STORAGE,
            modifiers={"initializer": {"body": INITIALIZER_GUARD}},
            functions={
                "initialize(address)": initialize(
                    [{"op": "call", "target": "_setOwner"}], modifiers=["initializer"]
                ),
                "_setOwner(address)": {
                    "visibility": "internal",
                    "body": [{"op": "write", "target": "owner", "operands": ["newOwner"]}],
                },
            },
        )
        assert check(rule_ug002, version) == []

    def test_helper_with_initializing_guard(self, make_version) -> None:
        """Test a helper restricted to the initialization phase is not reported."""
        only_initializing = [
            {"op": "require", "operands": ["initialized"], "check": "not"},
            {"op": "placeholder"},
        ]
        version = make_version(
            storage=STORAGE,
            modifiers={
                "initializer": {"body": INITIALIZER_GUARD},
                "onlyInitializing": {"body": only_initializing},
            },
            functions={
                "initialize(address)": initialize(
                    [{"op": "call", "target": "setOwner"}], modifiers=["initializer"]
                ),
                "setOwner(address)": {
                    "visibility": "public",
                    "modifiers": ["onlyInitializing"],
                    "body": [{"op": "write", "target": "owner", "operands": ["newOwner"]}],
                },
            },
        )
        assert check(rule_ug002, version) == []

    def test_helper_with_access_check(self, make_version) -> None:
        """Test an owner-restricted helper is not reported."""
        version = make_version(
            storage=STORAGE,
            modifiers={"initializer": {"body": INITIALIZER_GUARD}, "onlyOwner": {"body": ONLY_OWNER}},
            functions={
                "initialize(address)": initialize(
                    [{"op": "call", "target": "setFee"}], modifiers=["initializer"]
                ),
                "setFee(uint256)": {
                    "visibility": "external",
                    "modifiers": ["onlyOwner"],
                    "body": [{"op": "write", "target": "feeBps", "operands": ["fee"]}],
                },
            },
        )
        assert check(rule_ug002, version) == []


class TestUnvalidatedParameter:
    """Test suite for UG-003."""

    def test_missing_zero_address_check(self, make_version) -> None:
        """Test an owner written from a parameter needs a zero-address check."""
        version = make_version(
            storage=STORAGE,
            functions={
                "initialize(address)": initialize(
                    [{"op": "write", "target": "owner", "operands": ["_owner"]}]
                )
            },
        )
        findings = check(rule_ug003, version)

        assert len(findings) == 1
        assert findings[0].severity == Severity.MEDIUM
        assert findings[0].location.slot == "owner"
        assert findings[0].location.slot_index == 1
        assert "zero-address" in findings[0].message

    def test_zero_address_check_present(self, make_version) -> None:
        """Test a non-zero require on the parameter satisfies the check."""
        version = make_version(
            storage=STORAGE,
            functions={
                "initialize(address)": initialize(
                    [
                        {"op": "require", "operands": ["_owner"], "check": "nonzero"},
                        {"op": "write", "target": "owner", "operands": ["_owner"]},
                    ]
                )
            },
        )
        assert check(rule_ug003, version) == []

    def test_equality_is_not_a_zero_check(self, make_version) -> None:
        """Test an unrelated equality check does not count."""
        version = make_version(
            storage=STORAGE,
            functions={
                "initialize(address)": initialize(
                    [
                        {"op": "require", "operands": ["_owner", "owner"], "check": "equals"},
                        {"op": "write", "target": "owner", "operands": ["_owner"]},
                    ]
                )
            },
        )
        assert len(check(rule_ug003, version)) == 1

    def test_rate_used_as_divisor(self, make_version) -> None:
        """Test a fee used in arithmetic needs a bounds check."""
        functions = {
            "initialize(uint256)": initialize(
                [{"op": "write", "target": "feeBps", "operands": ["_fee"]}], parameters=("_fee",)
            ),
            "quote(uint256)": {
                "visibility": "public",
                "body": [{"op": "compute", "target": "div", "operands": ["amount", "feeBps"]}],
            },
        }
        version = make_version(storage=STORAGE, functions=functions)
        findings = check(rule_ug003, version)

        assert len(findings) == 1
        assert findings[0].location.slot == "feeBps"
        assert findings[0].context["critical"] == "rate"

    def test_rate_range_check(self, make_version) -> None:
        """Test a range check satisfies a rate slot."""
        functions = {
            "initialize(uint256)": initialize(
                [
                    {"op": "require", "operands": ["_fee"], "check": "range"},
                    {"op": "write", "target": "feeBps", "operands": ["_fee"]},
                ],
                parameters=("_fee",),
            ),
            "quote(uint256)": {
                "visibility": "public",
                "body": [{"op": "compute", "target": "mul", "operands": ["amount", "feeBps"]}],
            },
        }
        version = make_version(storage=STORAGE, functions=functions)
        assert check(rule_ug003, version) == []

    def test_each_slot_has_its_own_location(self, make_version) -> None:
        """Test findings on two slots of one initializer print distinct locations."""
        functions = {
            "initialize(address,uint256)": initialize(
                [
                    {"op": "write", "target": "owner", "operands": ["_owner"]},
                    {"op": "write", "target": "feeBps", "operands": ["_fee"]},
                ],
                parameters=("_owner", "_fee"),
            ),
            "quote(uint256)": {
                "visibility": "public",
                "body": [{"op": "compute", "target": "div", "operands": ["amount", "feeBps"]}],
            },
        }
        findings = check(rule_ug003, make_version(storage=STORAGE, functions=functions))

        assert [str(f.location) for f in findings] == [
            "Vault.initialize(address,uint256)[1:owner]",
            "Vault.initialize(address,uint256)[2:feeBps]",
        ]

    def test_divisor_without_rate_name(self, make_version) -> None:
        """Test a numeric slot that is not fee- or rate-like is not critical."""
        functions = {
            "initialize(uint256)": initialize(
                [{"op": "write", "target": "totalSupply", "operands": ["_supply"]}],
                parameters=("_supply",),
            ),
            "share(uint256)": {
                "visibility": "public",
                "body": [{"op": "compute", "target": "div", "operands": ["amount", "totalSupply"]}],
            },
        }
        version = make_version(
            storage=[*STORAGE, {"name": "totalSupply", "type": "uint256"}], functions=functions
        )
        assert check(rule_ug003, version) == []

    def test_rate_not_used_in_arithmetic(self, make_version) -> None:
        """Test a fee never used as a divisor or multiplier needs no check."""
        version = make_version(
            storage=STORAGE,
            functions={
                "initialize(uint256)": initialize(
                    [{"op": "write", "target": "feeBps", "operands": ["_fee"]}],
                    parameters=("_fee",),
                )
            },
        )
        assert check(rule_ug003, version) == []

    def test_constant_write(self, make_version) -> None:
        """Test writes that do not come from a parameter are not reported."""
        version = make_version(
            storage=STORAGE,
            functions={
                "initialize()": initialize(
                    [{"op": "write", "target": "owner", "operands": ["msg.sender"]}], parameters=()
                )
            },
        )
        assert check(rule_ug003, version) == []


class TestImplementationExposure:
    """Test suite for UG-004."""

    def test_always_critical(self, make_version) -> None:
        """Test unguarded initializers of implementations are critical."""
        version = make_version(
            storage=STORAGE,
            functions={
                "initialize(address)": initialize([]),
                "initializeV2()": initialize([], parameters=()),
            },
            proxy=True,
        )
        findings = check(rule_ug004, version)

        assert len(findings) == 2
        assert all(f.severity == Severity.CRITICAL for f in findings)
        assert all(f.category == FindingCategory.INIT_UNPROTECTED for f in findings)

    def test_not_an_implementation(self, make_version) -> None:
        """Test plain contracts are left to UG-001."""
        version = make_version(storage=STORAGE, functions={"initialize(address)": initialize([])})
        assert check(rule_ug004, version) == []


class TestUnlockedImplementation:
    """Test suite for UG-005."""

    @pytest.fixture
    def functions(self) -> dict:
        """Guarded initializer of an implementation."""
        return {"initialize(address)": initialize([], modifiers=["initializer"])}

    def test_missing_constructor(self, make_version, functions: dict) -> None:
        """Test an implementation without a locking constructor is reported."""
        version = make_version(
            storage=STORAGE,
            modifiers={"initializer": {"body": INITIALIZER_GUARD}},
            functions=functions,
            proxy=True,
        )
        findings = check(rule_ug005, version)

        assert len(findings) == 1
        assert findings[0].severity == Severity.MEDIUM
        assert findings[0].location.function is None
        assert findings[0].context["flags"] == ["initialized"]
        assert findings[0].context["scope"] == "implementation"
        assert findings[0].title == "Unlocked Implementation"

    def test_disable_initializers(self, make_version, functions: dict) -> None:
        """Test a constructor that sets the flag through a helper locks the implementation."""
        functions = {
            **functions,
            "_disableInitializers()": {
                "visibility": "internal",
                "body": [{"op": "write", "target": "initialized", "operands": ["true"]}],
            },
            "constructor()": {
                "kind": "constructor",
                "visibility": "public",
                "body": [{"op": "call", "target": "_disableInitializers"}],
            },
        }
        version = make_version(
            storage=STORAGE,
            modifiers={"initializer": {"body": INITIALIZER_GUARD}},
            functions=functions,
            proxy=True,
        )
        assert check(rule_ug005, version) == []

    def test_unguarded_initializers_left_to_ug004(self, make_version) -> None:
        """Test implementations with unguarded initializers are not reported twice."""
        version = make_version(
            storage=STORAGE, functions={"initialize(address)": initialize([])}, proxy=True
        )
        assert check(rule_ug005, version) == []


class TestInitializationAnalyzer:
    """Test suite for InitializationAnalyzer."""

    def test_unguarded_owner_initializer(self, make_version) -> None:
        """Test the unprotected and unvalidated findings of an unguarded initializer."""
        version = make_version(
            storage=STORAGE,
            functions={
                "initialize(address)": initialize(
                    [{"op": "write", "target": "owner", "operands": ["_owner"]}]
                )
            },
        )
        findings = InitializationAnalyzer().execute(AnalysisContext(version=version))

        assert sorted((f.category.value, f.severity.value) for f in findings) == [
            ("init-unprotected", "critical"),
            ("init-unvalidated-param", "medium"),
        ]

    def test_disabled_rules(self, make_version) -> None:
        """Test disabled rules are not executed."""
        config = UpgradeGuardConfig(disabled_rules=frozenset({"UG-003"}))
        version = make_version(
            storage=STORAGE,
            functions={
                "initialize(address)": initialize(
                    [{"op": "write", "target": "owner", "operands": ["_owner"]}]
                )
            },
        )
        findings = InitializationAnalyzer(config).execute(AnalysisContext(version=version))
        assert [f.rule_id for f in findings] == ["UG-001"]
