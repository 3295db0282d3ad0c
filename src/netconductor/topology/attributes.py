"""Per-layer node and term-point attribute schemas.

Nodes and term-points carry at most one attribute record, chosen by the
RFC 8345 augmentation key present in the data. The records are plain
dataclasses, so a node attribute is one of a closed set of variants rather
than a free-form dict. Keys a record does not know are kept in ``extra``
and written back untouched.
"""

from dataclasses import dataclass, field, fields
from typing import Any, ClassVar

NS_MDDO = "mddo-topology"


def _wire(key: str, default: Any = None, factory: Any = None, decode: Any = None,
          encode: Any = None) -> Any:
    metadata = {"wire": key, "decode": decode, "encode": encode}
    if factory is not None:
        return field(default_factory=factory, metadata=metadata)
    return field(default=default, metadata=metadata)


@dataclass
class Attribute:
    """Base of all attribute records."""

    KEY: ClassVar[str] = ""

    extra: dict[str, Any] = field(default_factory=dict)
    # wire keys the record was loaded with; emitted even when empty or null
    present: set[str] = field(default_factory=set, compare=False, repr=False)

    @classmethod
    def wire_keys(cls) -> set[str]:
        """Wire (RFC 8345) keys this record understands."""
        return {f.metadata["wire"] for f in fields(cls) if "wire" in f.metadata}

    @classmethod
    def field_for(cls, wire_key: str) -> str | None:
        for f in fields(cls):
            if f.metadata.get("wire") == wire_key:
                return f.name
        return None

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> "Attribute":
        kwargs: dict[str, Any] = {}
        known = cls.wire_keys()
        for f in fields(cls):
            wire = f.metadata.get("wire")
            if wire is None or wire not in data:
                continue
            decode = f.metadata.get("decode")
            kwargs[f.name] = decode(data[wire]) if decode else data[wire]
        kwargs["extra"] = {k: v for k, v in data.items() if k not in known}
        kwargs["present"] = {k for k in known if k in data}
        return cls(**kwargs)

    def to_data(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for f in fields(self):
            wire = f.metadata.get("wire")
            if wire is None:
                continue
            value = getattr(self, f.name)
            if wire not in self.present and value in (None, []):
                continue
            encode = f.metadata.get("encode")
            data[wire] = encode(value) if encode else value
        data.update(self.extra)
        return data

    def set_by_wire_key(self, wire_key: str, value: Any) -> bool:
        """Replace the whole field named by `wire_key`; False if unknown."""
        name = self.field_for(wire_key)
        if name is None:
            return False
        decode = next(f.metadata.get("decode") for f in fields(self) if f.name == name)
        setattr(self, name, decode(value) if decode else value)
        self.present.add(wire_key)
        return True


@dataclass
class BgpPrefix:
    """An entry of a BGP prefix-set."""

    prefix: str
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> "BgpPrefix":
        return cls(prefix=data["prefix"], extra={k: v for k, v in data.items() if k != "prefix"})

    def to_data(self) -> dict[str, Any]:
        return {"prefix": self.prefix, **self.extra}


@dataclass
class PrefixSet:
    """A named BGP prefix-set."""

    name: str
    prefixes: list[BgpPrefix] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)
    # older exports use "prefix" for the entry list
    list_key: str = field(default="prefixes", compare=False)

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> "PrefixSet":
        list_key = "prefix" if "prefix" in data and "prefixes" not in data else "prefixes"
        return cls(
            name=data["name"],
            prefixes=[BgpPrefix.from_data(p) for p in data.get(list_key, [])],
            extra={k: v for k, v in data.items() if k not in ("name", "prefix", "prefixes")},
            list_key=list_key,
        )

    def to_data(self) -> dict[str, Any]:
        return {"name": self.name, self.list_key: [p.to_data() for p in self.prefixes], **self.extra}

    def prefix_strings(self) -> list[str]:
        return [p.prefix for p in self.prefixes]


def _decode_prefix_sets(value: list[dict]) -> list[PrefixSet]:
    return [PrefixSet.from_data(p) for p in value]


def _encode_prefix_sets(value: list[PrefixSet]) -> list[dict]:
    return [p.to_data() for p in value]


@dataclass
class L3NodeAttribute(Attribute):
    KEY: ClassVar[str] = f"{NS_MDDO}:l3-node-attributes"

    node_type: str | None = _wire("node-type")
    prefixes: list[dict] = _wire("prefix", factory=list)
    flags: list[str] = _wire("flag", factory=list)


@dataclass
class L3TermPointAttribute(Attribute):
    KEY: ClassVar[str] = f"{NS_MDDO}:l3-termination-point-attributes"

    ip_addrs: list[str] = _wire("ip-address", factory=list)
    flags: list[str] = _wire("flag", factory=list)


@dataclass
class BgpProcNodeAttribute(Attribute):
    KEY: ClassVar[str] = f"{NS_MDDO}:bgp-proc-node-attributes"
    # attribute groups a policy patch may replace
    PATCHABLE: ClassVar[tuple[str, ...]] = ("policy", "prefix-set", "as-path-set", "community-set")

    router_id: str | None = _wire("router-id")
    confederation_id: int | None = _wire("confederation-id")
    confederation_members: list[int] = _wire("confederation-member", factory=list)
    route_reflector: bool | None = _wire("route-reflector")
    peer_groups: list[dict] = _wire("peer-group", factory=list)
    policies: list[dict] = _wire("policy", factory=list)
    prefix_sets: list[PrefixSet] = _wire(
        "prefix-set", factory=list, decode=_decode_prefix_sets, encode=_encode_prefix_sets
    )
    as_path_sets: list[dict] = _wire("as-path-set", factory=list)
    community_sets: list[dict] = _wire("community-set", factory=list)
    redistribute: list[dict] = _wire("redistribute", factory=list)
    flags: list[str] = _wire("flag", factory=list)


@dataclass
class BgpProcTermPointAttribute(Attribute):
    KEY: ClassVar[str] = f"{NS_MDDO}:bgp-proc-termination-point-attributes"
    PATCHABLE: ClassVar[tuple[str, ...]] = ("import-policy", "export-policy")

    local_as: int | None = _wire("local-as")
    local_ip: str | None = _wire("local-ip")
    remote_as: int | None = _wire("remote-as")
    remote_ip: str | None = _wire("remote-ip")
    confederation: int | None = _wire("confederation")
    route_reflector_client: bool | None = _wire("route-reflector-client")
    cluster_id: str | None = _wire("cluster-id")
    peer_group: str | None = _wire("peer-group")
    import_policies: list[str] = _wire("import-policy", factory=list)
    export_policies: list[str] = _wire("export-policy", factory=list)
    timer: dict | None = _wire("timer")
    flags: list[str] = _wire("flag", factory=list)


@dataclass
class BgpAsNodeAttribute(Attribute):
    KEY: ClassVar[str] = f"{NS_MDDO}:bgp-as-node-attributes"

    as_number: int | None = _wire("as-number")


NODE_ATTRIBUTE_TYPES: dict[str, type[Attribute]] = {
    cls.KEY: cls for cls in (L3NodeAttribute, BgpProcNodeAttribute, BgpAsNodeAttribute)
}
TP_ATTRIBUTE_TYPES: dict[str, type[Attribute]] = {
    cls.KEY: cls for cls in (L3TermPointAttribute, BgpProcTermPointAttribute)
}


def pop_attribute(data: dict[str, Any], registry: dict[str, type[Attribute]]) -> Attribute | None:
    """Remove and decode the first known attribute key found in `data`."""
    for key, cls in registry.items():
        if key in data:
            return cls.from_data(data.pop(key))
    return None
