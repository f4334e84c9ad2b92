import re
from collections.abc import Mapping, Sequence
from enum import Enum
from functools import cached_property
from typing import Any, cast

ABI_JSON = None | bool | int | float | str | Sequence["ABI_JSON"] | Mapping[str, "ABI_JSON"]
"""Values serializable to JSON."""

_TUPLE_TYPE_RE = re.compile(r"^tuple((\[\d*\])*)$")


def canonical_type(entry: Mapping[str, Any]) -> str:
    """
    Returns the canonical form of a parameter type from its JSON ABI entry.

    Structs (``tuple`` types) are expanded into their component types,
    e.g. ``tuple[]`` with components ``uint256`` and ``address``
    becomes ``(uint256,address)[]``.
    """
    type_str = entry["type"]
    match = _TUPLE_TYPE_RE.match(type_str)
    if not match:
        return cast("str", type_str)

    if "components" not in entry:
        raise ValueError(f"A `{type_str}` parameter must have `components`")
    components = ",".join(canonical_type(component) for component in entry["components"])
    return f"({components}){match.group(1)}"


class Mutability(Enum):
    """Possible states of a contract's function mutability."""

    PURE = "pure"
    """Solidity's ``pure`` (does not read or write the contract state)."""
    VIEW = "view"
    """Solidity's ``view`` (may read the contract state)."""
    NONPAYABLE = "nonpayable"
    """Solidity's ``nonpayable`` (may write the contract state)."""
    PAYABLE = "payable"
    """
    Solidity's ``payable`` (may write the contract state
    and accept associated funds with transactions).
    """

    @classmethod
    def from_json(cls, entry: ABI_JSON) -> "Mutability":
        try:
            return cls(entry)
        except ValueError as exc:
            raise ValueError(f"Unknown mutability identifier: {entry}") from exc

    @property
    def payable(self) -> bool:
        return self == Mutability.PAYABLE

    @property
    def mutating(self) -> bool:
        return self in {Mutability.PAYABLE, Mutability.NONPAYABLE}


def _normalize_params(
    params: Sequence[str] | Sequence[tuple[str | None, str]],
) -> tuple[tuple[str | None, str], ...]:
    return tuple(
        (None, param) if isinstance(param, str) else (param[0], param[1]) for param in params
    )


class FunctionFragment:
    """
    An immutable description of a contract function:
    its name, its input and output types, and its mutability.

    Inputs and outputs are given as sequences of canonical type strings
    (e.g. ``"uint256"``, ``"(address,bool)[]"``),
    or as sequences of ``(name, type)`` pairs where ``name`` can be ``None``.
    """

    name: str
    """The name of the function."""

    inputs: tuple[tuple[str | None, str], ...]
    """Named input types."""

    outputs: tuple[tuple[str | None, str], ...]
    """Named output types."""

    mutability: Mutability
    """The function's state mutability."""

    @classmethod
    def from_json(cls, entry: ABI_JSON) -> "FunctionFragment":
        """Creates this object from a JSON ABI function entry."""
        entry_typed = cast("Mapping[str, Any]", entry)

        if entry_typed["type"] != "function":
            raise ValueError(
                "FunctionFragment object must be created from a JSON entry with type='function'"
            )

        def params(key: str) -> list[tuple[str | None, str]]:
            return [
                (param.get("name") or None, canonical_type(param))
                for param in entry_typed.get(key, [])
            ]

        return cls(
            name=entry_typed["name"],
            inputs=params("inputs"),
            outputs=params("outputs"),
            mutability=Mutability.from_json(entry_typed.get("stateMutability", "nonpayable")),
        )

    def __init__(
        self,
        name: str,
        inputs: Sequence[str] | Sequence[tuple[str | None, str]] = (),
        outputs: Sequence[str] | Sequence[tuple[str | None, str]] = (),
        mutability: Mutability = Mutability.NONPAYABLE,
    ):
        self.name = name
        self.inputs = _normalize_params(inputs)
        self.outputs = _normalize_params(outputs)
        self.mutability = mutability

    @property
    def input_types(self) -> tuple[str, ...]:
        """Canonical input types."""
        return tuple(tp for _name, tp in self.inputs)

    @property
    def output_types(self) -> tuple[str, ...]:
        """Canonical output types."""
        return tuple(tp for _name, tp in self.outputs)

    @cached_property
    def canonical_form(self) -> str:
        """The input types in the canonical form, e.g. ``(address,uint256)``."""
        return "(" + ",".join(self.input_types) + ")"

    @cached_property
    def signature(self) -> str:
        """The canonical function signature, e.g. ``transfer(address,uint256)``."""
        return self.name + self.canonical_form

    def to_json(self) -> ABI_JSON:
        """
        Returns this object's JSON ABI.

        Struct types are serialized in their expanded canonical form.
        """

        def params(fields: tuple[tuple[str | None, str], ...]) -> list[ABI_JSON]:
            return [{"name": name or "", "type": tp} for name, tp in fields]

        return {
            "type": "function",
            "name": self.name,
            "stateMutability": self.mutability.value,
            "inputs": params(self.inputs),
            "outputs": params(self.outputs),
        }

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, FunctionFragment)
            and self.name == other.name
            and self.inputs == other.inputs
            and self.outputs == other.outputs
            and self.mutability == other.mutability
        )

    def __hash__(self) -> int:
        return hash((FunctionFragment, self.name, self.inputs, self.outputs, self.mutability))

    def __str__(self) -> str:
        def fields(params: tuple[tuple[str | None, str], ...]) -> str:
            return (
                "("
                + ", ".join(tp + ((" " + name) if name is not None else "") for name, tp in params)
                + ")"
            )

        returns = "" if not self.outputs else f" returns {fields(self.outputs)}"
        return f"function {self.name}{fields(self.inputs)} {self.mutability.value}{returns}"

    def __repr__(self) -> str:
        return f"FunctionFragment({self.signature!r})"
