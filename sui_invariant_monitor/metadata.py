"""Move module metadata fetching and normalization."""

from typing import Any

from sui_invariant_monitor.cache import cache_key, get_cached, set_cached
from sui_invariant_monitor.errors import ParseError
from sui_invariant_monitor.fetcher import SuiFetcher
from sui_invariant_monitor.models import FieldMetadata, FunctionMetadata, ModuleMetadata, StructMetadata


def parse_type_tag(type_data: Any) -> str:
    """Render a normalized Move type as text, e.g. `0x2::balance::Balance` or `vector<u64>`."""
    if isinstance(type_data, str):
        return type_data
    if isinstance(type_data, dict):
        if "Struct" in type_data:
            s = type_data["Struct"] or {}
            base = f"{s.get('address', '')}::{s.get('module', '')}::{s.get('name', '')}"
            type_args = s.get("typeArguments") or []
            if type_args:
                return f"{base}<{', '.join(parse_type_tag(t) for t in type_args)}>"
            return base
        if "Vector" in type_data:
            return f"vector<{parse_type_tag(type_data['Vector'])}>"
        if "Reference" in type_data:
            return f"&{parse_type_tag(type_data['Reference'])}"
        if "MutableReference" in type_data:
            return f"&mut {parse_type_tag(type_data['MutableReference'])}"
        if "TypeParameter" in type_data:
            return f"T{type_data['TypeParameter']}"
    return repr(type_data)


def parse_module_metadata(package_id: str, module_name: str, data: dict[str, Any]) -> ModuleMetadata:
    """Parse a sui_getNormalizedMoveModule result."""
    structs: list[StructMetadata] = []
    for name, struct_data in (data.get("structs") or {}).items():
        abilities = (struct_data.get("abilities") or {}).get("abilities") or []
        fields = tuple(
            FieldMetadata(name=str(f["name"]), type_=parse_type_tag(f.get("type")))
            for f in struct_data.get("fields") or []
            if isinstance(f, dict) and "name" in f
        )
        structs.append(StructMetadata(name=name, abilities=tuple(str(a) for a in abilities), fields=fields))

    functions: list[FunctionMetadata] = []
    for name, fn in (data.get("exposedFunctions") or {}).items():
        functions.append(
            FunctionMetadata(
                name=name,
                visibility=str(fn.get("visibility") or "Private"),
                is_entry=bool(fn.get("isEntry", False)),
                parameters=tuple(parse_type_tag(t) for t in fn.get("parameters") or []),
                return_types=tuple(parse_type_tag(t) for t in fn.get("return") or []),
            )
        )

    return ModuleMetadata(
        package_id=package_id,
        module_name=module_name,
        structs=tuple(structs),
        functions=tuple(functions),
    )


class MetadataFetcher:
    """Fetches normalized Move modules. Published packages are immutable, so responses are cached."""

    def __init__(self, fetcher: SuiFetcher, *, use_cache: bool = True):
        self.fetcher = fetcher
        self.use_cache = use_cache

    def _cached_call(self, prefix: str, method: str, params: list[Any]) -> Any:
        key = cache_key(prefix, self.fetcher.rpc_url, *params)
        if self.use_cache:
            cached = get_cached(key)
            if cached is not None:
                return cached
        result = self.fetcher.rpc_call(method, params)
        if result is None:
            raise ParseError(f"{method}: no result in response")
        if self.use_cache:
            set_cached(key, result)
        return result

    def fetch_package_modules(self, package_id: str) -> list[str]:
        result = self._cached_call("package_modules", "sui_getNormalizedMoveModulesByPackage", [package_id])
        if not isinstance(result, dict):
            return []
        return sorted(result.keys())

    def fetch_module_metadata(self, package_id: str, module_name: str) -> ModuleMetadata:
        result = self._cached_call("module", "sui_getNormalizedMoveModule", [package_id, module_name])
        if not isinstance(result, dict):
            raise ParseError(f"Unexpected module format for {package_id}::{module_name}")
        return parse_module_metadata(package_id, module_name, result)
