from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any, cast

from ethereum_rpc import Address

from ._fragment import ABI_JSON, FunctionFragment
from ._function import BoundFunction, BoundFunctionCall
from ._transport import Transport

# JSON ABI entry types that do not describe callable functions.
_NON_FUNCTION_ENTRIES = {"constructor", "event", "error", "fallback", "receive"}


class ContractABI:
    """
    A collection of contract function fragments.
    """

    functions: tuple[FunctionFragment, ...]
    """Contract's functions, in the order of declaration."""

    @classmethod
    def from_json(cls, json_abi: ABI_JSON) -> "ContractABI":
        """
        Creates this object from a JSON ABI (e.g. generated by a Solidity compiler).
        Entries other than functions (constructor, events, errors etc) are skipped.
        """
        json_abi_typed = cast("Sequence[Mapping[str, ABI_JSON]]", json_abi)

        functions = []
        for entry in json_abi_typed:
            if entry["type"] == "function":
                functions.append(FunctionFragment.from_json(entry))
            elif entry["type"] not in _NON_FUNCTION_ENTRIES:
                raise ValueError(f"Unknown ABI entry type: {entry['type']}")

        return cls(functions)

    def __init__(self, functions: Iterable[FunctionFragment] = ()):
        self.functions = tuple(functions)

        signatures = [function.signature for function in self.functions]
        for signature in signatures:
            if signatures.count(signature) > 1:
                raise ValueError(f"Function `{signature}` is declared more than once")

    def to_json(self) -> ABI_JSON:
        """Returns the serialized list of functions."""
        return [function.to_json() for function in self.functions]

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ContractABI) and self.functions == other.functions

    def __hash__(self) -> int:
        return hash((ContractABI, self.functions))

    def __str__(self) -> str:
        indent = "    "
        return "{\n" + "\n".join(indent + str(function) for function in self.functions) + "\n}"


class OverloadedFunction:
    """
    Several :py:class:`BoundFunction` objects with the same name
    but different input signatures.

    Calling it picks the function by the number of arguments.
    """

    def __init__(self, functions: Sequence[BoundFunction]):
        if not functions:
            raise ValueError("`functions` cannot be empty")
        self._name = functions[0].name
        self._functions = {function.fragment.signature: function for function in functions}

    @property
    def name(self) -> str:
        """The name of the functions."""
        return self._name

    @property
    def functions(self) -> dict[str, BoundFunction]:
        """The overloaded functions, indexed by their signatures."""
        return self._functions

    def __getitem__(self, signature: str) -> BoundFunction:
        """Returns the function with the given signature (e.g. ``transfer(address,uint256)``)."""
        return self._functions[signature]

    def __call__(self, *args: Any) -> BoundFunctionCall:
        candidates = [
            function
            for function in self._functions.values()
            if len(function.fragment.inputs) == len(args)
        ]
        if len(candidates) == 1:
            return candidates[0](*args)
        if not candidates:
            raise TypeError(
                f"Could not find an overload of `{self.name}` taking {len(args)} argument(s)"
            )
        signatures = ", ".join(function.fragment.signature for function in candidates)
        raise TypeError(
            f"Ambiguous call of `{self.name}` with {len(args)} argument(s), "
            f"select one explicitly from: {signatures}"
        )

    def __repr__(self) -> str:
        return f"OverloadedFunction({list(self._functions)!r})"


class Functions:
    """
    A holder for a contract's bound functions which can be accessed as attributes,
    indexed by name or by full signature, or iterated over.
    """

    def __init__(self, functions: Iterable[BoundFunction]):
        self._by_signature: dict[str, BoundFunction] = {}
        by_name: dict[str, list[BoundFunction]] = {}
        for function in functions:
            self._by_signature[function.fragment.signature] = function
            by_name.setdefault(function.name, []).append(function)

        self._by_name: dict[str, BoundFunction | OverloadedFunction] = {
            name: overloads[0] if len(overloads) == 1 else OverloadedFunction(overloads)
            for name, overloads in by_name.items()
        }

    def __getattr__(self, name: str) -> BoundFunction | OverloadedFunction:
        """Returns the function by name."""
        # `copy` and `pickle` look up attributes before `__init__` has run
        by_name = self.__dict__.get("_by_name", {})
        try:
            return by_name[name]
        except KeyError as exc:
            raise AttributeError(f"The contract has no function `{name}`") from exc

    def __getitem__(self, key: str) -> BoundFunction | OverloadedFunction:
        """Returns the function by name or by signature."""
        if key in self._by_signature:
            return self._by_signature[key]
        return self._by_name[key]

    def __contains__(self, key: str) -> bool:
        return key in self._by_signature or key in self._by_name

    def __iter__(self) -> Iterator[BoundFunction]:
        """Returns the iterator over all functions (overloads are listed separately)."""
        return iter(self._by_signature.values())

    def __len__(self) -> int:
        return len(self._by_signature)


class DeployedContract:
    """
    A deployed contract (ABI and address) with its functions bound to a transport.
    """

    abi: ContractABI
    """Contract's ABI."""

    address: Address
    """Contract's address."""

    function: Functions
    """Contract's functions bound to the address and the transport."""

    def __init__(self, transport: Transport, abi: ContractABI, address: Address):
        self.abi = abi
        self.address = address
        self.function = Functions(
            BoundFunction(transport, self, fragment) for fragment in abi.functions
        )

    def resolve_call(self, data_bytes: bytes) -> None | tuple[BoundFunction, tuple[Any, ...]]:
        """
        Finds the function that the given call data is addressed to,
        and decodes the arguments.
        Returns ``None`` if none of the contract's functions match.
        """
        for function in self.function:
            args = function.match_input(data_bytes)
            if args is not None:
                return function, args
        return None
