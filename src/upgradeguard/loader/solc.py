"""Reader for solc compact-JSON ASTs.

Walks a ``SourceUnit`` (or the ``sources`` map of a solc standard-JSON
output) and flattens one contract along its C3 linearization into the
contract-model document the model loader normalizes. The AST must already
exist: producing it is the compiler's job.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator

from upgradeguard.errors import MalformedInputError

logger = logging.getLogger(__name__)

# Calls that behave like require() when their argument is a condition
ASSERTIONS: set[str] = {"require", "assert"}

SENDER_CALLS: set[str] = {"_msgSender"}

BUILTINS: set[str] = {
    "revert",
    "keccak256",
    "sha256",
    "ripemd160",
    "ecrecover",
    "addmod",
    "mulmod",
    "blockhash",
    "gasleft",
    "type",
}

ZERO_LITERALS: set[str] = {"0", "0x0", "address(0)", "address(0x0)"}

RELATIONAL = {"<", "<=", ">", ">="}

DATA_LOCATIONS = (" memory", " calldata", " storage", " pointer", " ref")


def is_solc_ast(data: Any) -> bool:
    """Check whether a document looks like solc output rather than a contract model."""
    if not isinstance(data, dict):
        return False
    if data.get("nodeType") == "SourceUnit":
        return True
    sources = data.get("sources")
    return isinstance(sources, dict) and any(
        isinstance(unit, dict) and "ast" in unit for unit in sources.values()
    )


class SolcAstReader:
    """Turn a solc AST into a contract-model document.

    Statements are reduced to the abstract shapes the analyzers need:
    requires (including ``if (...) revert``), state writes, internal calls,
    multiplications/divisions and modifier placeholders.
    """

    def __init__(self) -> None:
        self.contracts: dict[int, dict[str, Any]] = {}
        self.structs: dict[str, dict[str, Any]] = {}
        self.state_names: set[str] = set()
        self.source: str = "<ast>"

    def read(
        self, data: dict[str, Any], contract_name: str | None = None, source: str | None = None
    ) -> dict[str, Any]:
        """Flatten one contract of the AST.

        Args:
            data: SourceUnit node or solc standard-JSON output
            contract_name: Contract to read (default: last non-library, non-interface contract)
            source: Where the AST came from (for error messages)

        Returns:
            Contract-model document

        Raises:
            MalformedInputError: If the contract or one of its bases is missing
        """
        self.source = source or "<ast>"
        self.contracts = {}
        self.structs = {}

        for unit in self._source_units(data):
            self._index(unit)

        target = self._select_contract(contract_name)
        chain = self._linearize(target)

        self.state_names = {
            var["name"] for contract in chain for var in self._state_variables(contract)
        }

        storage = [
            self._storage_entry(var) for contract in chain for var in self._state_variables(contract)
        ]

        modifiers: dict[str, Any] = {}
        functions: dict[str, Any] = {}
        # Most base first, so overrides replace what they override
        for contract in chain:
            for node in contract.get("nodes", []):
                node_type = node.get("nodeType")
                if node_type == "ModifierDefinition":
                    modifiers[node["name"]] = {"body": self._body(node.get("body"))}
                elif node_type == "FunctionDefinition":
                    entry = self._function_entry(node)
                    if entry is None:
                        continue
                    if entry.get("kind") == "constructor" and contract is not target:
                        continue
                    functions[entry.pop("signature")] = entry

        bases = [contract["name"] for contract in chain]
        return {
            "id": target["name"],
            "bases": bases,
            "isProxyImplementation": self._looks_upgradeable(bases, functions),
            "storage": storage,
            "modifiers": modifiers,
            "functions": functions,
        }

    def _source_units(self, data: dict[str, Any]) -> Iterator[dict[str, Any]]:
        if data.get("nodeType") == "SourceUnit":
            yield data
            return
        for path, unit in sorted(data.get("sources", {}).items()):
            ast = unit.get("ast") if isinstance(unit, dict) else None
            if not isinstance(ast, dict) or ast.get("nodeType") != "SourceUnit":
                raise MalformedInputError(f"source {path} carries no SourceUnit AST", self.source)
            yield ast

    def _index(self, unit: dict[str, Any]) -> None:
        for node in unit.get("nodes", []):
            if node.get("nodeType") == "ContractDefinition":
                self.contracts[node["id"]] = node
                for child in node.get("nodes", []):
                    if child.get("nodeType") == "StructDefinition":
                        self._index_struct(child)
            elif node.get("nodeType") == "StructDefinition":
                self._index_struct(node)

    def _index_struct(self, node: dict[str, Any]) -> None:
        self.structs[node.get("canonicalName", node.get("name", ""))] = node
        self.structs.setdefault(node.get("name", ""), node)

    def _select_contract(self, contract_name: str | None) -> dict[str, Any]:
        candidates = [
            node
            for node in self.contracts.values()
            if node.get("contractKind", "contract") == "contract"
        ]
        if contract_name:
            for node in candidates:
                if node.get("name") == contract_name:
                    return node
            raise MalformedInputError(f"contract {contract_name} not found in AST", self.source)
        if not candidates:
            raise MalformedInputError("AST contains no contract definition", self.source)
        return candidates[-1]

    def _linearize(self, target: dict[str, Any]) -> list[dict[str, Any]]:
        """Return the inheritance chain, most base first."""
        chain = []
        for contract_id in reversed(target.get("linearizedBaseContracts", [target["id"]])):
            if contract_id not in self.contracts:
                raise MalformedInputError(
                    f"storage ordering of {target['name']} depends on unresolved base "
                    f"contract id {contract_id}",
                    self.source,
                )
            chain.append(self.contracts[contract_id])
        return chain

    def _state_variables(self, contract: dict[str, Any]) -> Iterator[dict[str, Any]]:
        for node in contract.get("nodes", []):
            if node.get("nodeType") != "VariableDeclaration" or not node.get("stateVariable"):
                continue
            if node.get("constant") or node.get("mutability") in ("constant", "immutable"):
                continue
            yield node

    def _storage_entry(self, var: dict[str, Any]) -> dict[str, Any]:
        type_name = _type_string(var)
        entry: dict[str, Any] = {"name": var.get("name", ""), "type": type_name}
        members = self._struct_members(type_name)
        if members:
            entry["members"] = members
        return entry

    def _struct_members(self, type_name: str, depth: int = 0) -> list[dict[str, Any]]:
        if not type_name.startswith("struct ") or depth > 8:
            return []
        struct = self.structs.get(type_name[len("struct ") :].strip())
        if struct is None:
            logger.warning("%s: layout of %s unknown, assuming one word", self.source, type_name)
            return []
        members = []
        for member in struct.get("members", []):
            member_type = _type_string(member)
            entry: dict[str, Any] = {"name": member.get("name", ""), "type": member_type}
            nested = self._struct_members(member_type, depth + 1)
            if nested:
                entry["members"] = nested
            members.append(entry)
        return members

    def _function_entry(self, node: dict[str, Any]) -> dict[str, Any] | None:
        kind = node.get("kind", "function")
        if kind not in ("function", "constructor"):
            return None
        if not node.get("implemented", True) and kind == "function":
            return None

        parameters = node.get("parameters", {}).get("parameters", [])
        name = "constructor" if kind == "constructor" else node.get("name", "")
        signature = f"{name}({','.join(_abi_type(p) for p in parameters)})"

        modifiers = []
        for invocation in node.get("modifiers", []):
            modifier_name = invocation.get("modifierName", {})
            label = modifier_name.get("name")
            if label is None:
                label = _path_name(modifier_name)
            # Base constructor calls appear as modifier invocations too
            if invocation.get("kind") == "baseConstructorSpecifier":
                continue
            modifiers.append(label)

        entry: dict[str, Any] = {
            "signature": signature,
            "name": name,
            "visibility": node.get("visibility"),
            "modifiers": modifiers,
            "parameters": [p.get("name", "") for p in parameters],
            "body": self._body(node.get("body")),
        }
        if kind == "constructor":
            entry["kind"] = "constructor"
        return entry

    def _looks_upgradeable(self, bases: list[str], functions: dict[str, Any]) -> bool:
        if any("Upgradeable" in base or "Initializable" in base for base in bases):
            return True
        return any(
            entry["name"].startswith(("initialize", "upgradeTo", "_authorizeUpgrade"))
            for entry in functions.values()
        )

    # Statements

    def _body(self, block: dict[str, Any] | None) -> list[dict[str, Any]]:
        statements: list[dict[str, Any]] = []
        if block:
            self._traverse_statements(block.get("statements", []), statements)
        return statements

    def _traverse_statements(
        self, nodes: list[dict[str, Any]], out: list[dict[str, Any]]
    ) -> None:
        """Recursively reduce statements into abstract body statements."""
        for stmt in nodes:
            if not stmt:
                continue
            node_type = stmt.get("nodeType")

            if node_type == "PlaceholderStatement":
                out.append({"op": "placeholder"})

            elif node_type == "ExpressionStatement":
                self._expression(stmt.get("expression", {}), out)

            elif node_type == "VariableDeclarationStatement":
                if stmt.get("initialValue"):
                    self._expression(stmt["initialValue"], out)

            elif node_type == "Return" and stmt.get("expression"):
                self._expression(stmt["expression"], out)

            elif node_type in ("Block", "UncheckedBlock"):
                self._traverse_statements(stmt.get("statements", []), out)

            elif node_type == "IfStatement":
                condition = stmt.get("condition", {})
                if _reverts(stmt.get("trueBody")):
                    out.extend(self._requires(condition, negate=True))
                else:
                    self._expression(condition, out)
                    self._traverse_statements([stmt.get("trueBody")], out)
                if stmt.get("falseBody"):
                    self._traverse_statements([stmt["falseBody"]], out)

            elif node_type in ("ForStatement", "WhileStatement", "DoWhileStatement"):
                for key in ("initializationExpression", "loopExpression"):
                    if stmt.get(key):
                        self._traverse_statements([stmt[key]], out)
                if stmt.get("condition"):
                    self._expression(stmt["condition"], out)
                self._traverse_statements([stmt.get("body")], out)

            elif node_type == "InlineAssembly":
                logger.warning(
                    "%s: inline assembly is not analyzed (line offset %s)",
                    self.source,
                    stmt.get("src", "?"),
                )

    def _expression(self, expr: dict[str, Any], out: list[dict[str, Any]]) -> None:
        if not expr:
            return
        node_type = expr.get("nodeType")

        if node_type == "FunctionCall":
            callee = expr.get("expression", {})
            args = expr.get("arguments", [])
            name = _callee_name(callee)
            if name in ASSERTIONS and args and expr.get("kind", "functionCall") == "functionCall":
                out.extend(self._requires(args[0], negate=False))
                return
            if expr.get("kind") == "functionCall" and name and name not in SENDER_CALLS | BUILTINS:
                if not _is_external_call(callee):
                    out.append({"op": "call", "target": name})
            for arg in args:
                self._expression(arg, out)
            if callee.get("nodeType") == "MemberAccess":
                self._expression(callee.get("expression", {}), out)

        elif node_type == "Assignment":
            target = _written_variable(expr.get("leftHandSide", {}))
            self._expression(expr.get("rightHandSide", {}), out)
            if target in self.state_names:
                operands = _identifiers(expr.get("rightHandSide", {}))
                if expr.get("operator", "=") != "=":
                    operands = [target, *operands]
                out.append({"op": "write", "target": target, "operands": operands})

        elif node_type == "UnaryOperation":
            operator = expr.get("operator")
            sub = expr.get("subExpression", {})
            if operator in ("++", "--", "delete"):
                target = _written_variable(sub)
                if target in self.state_names:
                    out.append({"op": "write", "target": target, "operands": [target]})
            else:
                self._expression(sub, out)

        elif node_type == "BinaryOperation":
            operator = expr.get("operator")
            if operator in ("*", "/", "%"):
                out.append(
                    {
                        "op": "compute",
                        "target": "mul" if operator == "*" else "div",
                        "operands": _identifiers(expr),
                    }
                )
            self._expression(expr.get("leftExpression", {}), out)
            self._expression(expr.get("rightExpression", {}), out)

        elif node_type in ("TupleExpression",):
            for component in expr.get("components", []):
                if component:
                    self._expression(component, out)

        elif node_type == "Conditional":
            for key in ("condition", "trueExpression", "falseExpression"):
                self._expression(expr.get(key, {}), out)

    def _requires(self, condition: dict[str, Any], negate: bool) -> list[dict[str, Any]]:
        """Split a condition into require statements.

        With ``negate`` the condition is the one that reverts, as in
        ``if (owner == address(0)) revert ZeroAddress();``.
        """
        operator = condition.get("operator")
        node_type = condition.get("nodeType")
        if node_type == "BinaryOperation" and operator in ("&&", "||"):
            # !(a || b) is !a && !b: both halves must hold
            if (operator == "&&") != negate:
                return self._requires(condition["leftExpression"], negate) + self._requires(
                    condition["rightExpression"], negate
                )
        return [
            {
                "op": "require",
                "operands": _identifiers(condition),
                "check": _check_kind(condition, negate),
            }
        ]


def _check_kind(condition: dict[str, Any], negate: bool) -> str:
    node_type = condition.get("nodeType")
    operator = condition.get("operator")

    if node_type == "UnaryOperation" and operator == "!":
        return "generic" if negate else "not"
    if node_type in ("Identifier", "MemberAccess", "IndexAccess"):
        return "not" if negate else "generic"
    if node_type != "BinaryOperation":
        return "generic"

    left = condition.get("leftExpression", {})
    right = condition.get("rightExpression", {})
    against_zero = _is_zero(left) or _is_zero(right)

    if operator in ("==", "!="):
        asserts_equal = (operator == "==") != negate
        if against_zero:
            return "equals" if asserts_equal else "nonzero"
        return "equals" if asserts_equal else "generic"
    if operator in RELATIONAL:
        # x > 0 (or, reverting, x <= 0) says x is non-zero
        if _is_zero(right) and (operator == ">") != negate:
            return "nonzero"
        return "range"
    return "generic"


def _reverts(body: dict[str, Any] | None) -> bool:
    if not body:
        return False
    node_type = body.get("nodeType")
    if node_type == "RevertStatement":
        return True
    if node_type == "ExpressionStatement":
        expr = body.get("expression", {})
        return expr.get("nodeType") == "FunctionCall" and _callee_name(
            expr.get("expression", {})
        ) == "revert"
    if node_type == "Block":
        return any(_reverts(stmt) for stmt in body.get("statements", []))
    return False


def _identifiers(expr: Any) -> list[str]:
    """Collect the names an expression reads, in source order."""
    found: list[str] = []

    def visit(node: Any) -> None:
        if isinstance(node, list):
            for item in node:
                visit(item)
            return
        if not isinstance(node, dict):
            return
        node_type = node.get("nodeType")
        if node_type == "Identifier":
            if node.get("name") not in ("require", "assert", "revert", "this", "super"):
                found.append(node["name"])
            return
        if node_type == "MemberAccess":
            base = node.get("expression", {})
            if base.get("nodeType") == "Identifier" and base.get("name") in ("msg", "tx"):
                found.append(f"{base['name']}.{node.get('memberName')}")
                return
        if node_type == "FunctionCall":
            callee = node.get("expression", {})
            name = _callee_name(callee)
            if name in SENDER_CALLS:
                found.append(f"{name}()")
                return
            if node.get("kind") == "typeConversion" and _is_zero(node):
                return
            if node.get("kind") == "functionCall" and callee.get("nodeType") == "Identifier":
                visit(node.get("arguments", []))
                return
        for key, value in node.items():
            if key in ("typeDescriptions", "typeName", "argumentTypes"):
                continue
            if isinstance(value, (dict, list)):
                visit(value)

    visit(expr)
    return list(dict.fromkeys(found))


def _is_zero(node: dict[str, Any]) -> bool:
    if node.get("nodeType") == "Literal":
        return str(node.get("value", "")).lower() in ZERO_LITERALS
    if node.get("nodeType") == "FunctionCall" and node.get("kind") == "typeConversion":
        args = node.get("arguments", [])
        return len(args) == 1 and _is_zero(args[0])
    return False


def _callee_name(callee: dict[str, Any]) -> str | None:
    node_type = callee.get("nodeType")
    if node_type == "Identifier":
        return callee.get("name")
    if node_type == "MemberAccess":
        return callee.get("memberName")
    if node_type == "IdentifierPath":
        return _path_name(callee)
    return None


def _is_external_call(callee: dict[str, Any]) -> bool:
    """True for calls on another contract (``token.transfer``), not ``super.f``/``this.f``."""
    if callee.get("nodeType") != "MemberAccess":
        return False
    base = callee.get("expression", {})
    return not (base.get("nodeType") == "Identifier" and base.get("name") in ("super", "this"))


def _written_variable(lhs: dict[str, Any]) -> str | None:
    node_type = lhs.get("nodeType")
    if node_type == "Identifier":
        return lhs.get("name")
    if node_type == "IndexAccess":
        return _written_variable(lhs.get("baseExpression", {}))
    if node_type == "MemberAccess":
        return _written_variable(lhs.get("expression", {}))
    return None


def _path_name(node: dict[str, Any]) -> str:
    return str(node.get("name", "")).split(".")[-1]


def _type_string(node: dict[str, Any]) -> str:
    type_string = node.get("typeDescriptions", {}).get("typeString")
    if not type_string:
        type_string = node.get("typeName", {}).get("typeDescriptions", {}).get("typeString", "")
    for location in DATA_LOCATIONS:
        type_string = type_string.replace(location, "")
    return type_string.strip()


def _abi_type(param: dict[str, Any]) -> str:
    type_string = _type_string(param)
    for prefix in ("contract ", "interface "):
        if type_string.startswith(prefix):
            return "address"
    for prefix in ("struct ", "enum "):
        if type_string.startswith(prefix):
            return type_string[len(prefix) :]
    return type_string
