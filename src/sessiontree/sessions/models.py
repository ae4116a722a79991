# sessiontree/sessions/models.py

import time
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Type, TypeVar, Union

from ..settings.config import StoreConstants
from ..utils.exceptions import (
    DuplicateNameError,
    InvalidPathError,
    NodeNotFoundError,
    NodeOwnershipError,
    ReadOnlySourceError,
    ReentrantMutationError,
    SessionValidationError,
)
from ..utils.logger import get_logger
from ..utils.translation_utils import _
from .notifier import ChangeHandler, ChangeNotifier, ChangeType
from .paths import decode_id_path, decode_names, encode_id_path, encode_names, validate_name

N = TypeVar("N", bound="SessionNode")


class ConnectionProtocol(Enum):
    SSH = "ssh"
    SSH2 = "ssh2"
    TELNET = "telnet"
    RLOGIN = "rlogin"
    RAW = "raw"
    SERIAL = "serial"
    CYGTERM = "cygterm"
    MINTTY = "mintty"

    @classmethod
    def parse(cls, value: Union[str, "ConnectionProtocol"]) -> "ConnectionProtocol":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(f"Unknown connection protocol: {value!r}")

    @property
    def uses_port(self) -> bool:
        return self not in (ConnectionProtocol.CYGTERM, ConnectionProtocol.MINTTY)


class SessionNode:
    """Base of every tree entry: a name, a parent folder and a sibling id."""

    is_source = False

    def __init__(self, name: str):
        self._name = validate_name(name)
        self._parent: Optional["SessionFolder"] = None
        self._id: Optional[int] = None
        self._created_at = time.time()
        self._modified_at = self._created_at
        self.logger = get_logger("sessiontree.sessions.model")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self._name!r} id={self._id}>"

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str):
        validate_name(value)
        if value == self._name:
            return
        if self._parent is not None:
            self._parent._rename_child(self, value)
        self._name = value
        self._on_renamed()
        # The name lives in the parent's document, or in our own if detached.
        (self._parent or self)._mark_modified()

    def _on_renamed(self):
        pass

    @property
    def parent(self) -> Optional["SessionFolder"]:
        return self._parent

    @property
    def id(self) -> Optional[int]:
        return self._id

    @property
    def modified_at(self) -> float:
        return self._modified_at

    @property
    def is_read_only(self) -> bool:
        source = self.get_source_node()
        return source is not None and source.read_only

    def get_source_node(self):
        """Nearest source at or above this node, or None."""
        current = self
        while current is not None:
            if current.is_source:
                return current
            current = current._parent
        return None

    def get_root(self) -> "SessionNode":
        current = self
        while current._parent is not None:
            current = current._parent
        return current

    def find_registry(self):
        current = self
        while current is not None:
            registry = getattr(current, "_registry", None)
            if registry is not None:
                return registry
            current = current._parent
        return None

    def get_names(self) -> List[str]:
        names = []
        current = self
        while current is not None:
            names.append(current._name)
            current = current._parent
        names.reverse()
        return names

    def get_names_string(self) -> str:
        return encode_names(self.get_names())

    def get_id_path(self) -> List[int]:
        """Ids from the first level below the root down to this node."""
        ids = []
        current = self
        while current._parent is not None:
            ids.append(current._id)
            current = current._parent
        ids.reverse()
        return ids

    def get_id_path_string(self) -> str:
        ids = self.get_id_path()
        if not ids:
            raise InvalidPathError(self._name, "a detached node has no id path")
        return encode_id_path(ids[:-1], ids[-1])

    def is_descendant_of(self, folder: "SessionFolder") -> bool:
        current = self._parent
        while current is not None:
            if current is folder:
                return True
            current = current._parent
        return False

    def remove(self) -> None:
        """Detach this node from its parent, if any."""
        if self._parent is not None:
            self._parent.remove_child(self)

    def clone(self) -> "SessionNode":
        raise NotImplementedError

    def dispose(self) -> None:
        pass

    def _check_writable(self):
        source = self.get_source_node()
        if source is not None and source.read_only and not source.is_loading:
            raise ReadOnlySourceError(source.name)

    def _mark_modified(self):
        self._modified_at = time.time()
        source = self.get_source_node()
        if source is not None:
            source.mark_dirty()


class SessionItem(SessionNode):
    """A connection definition: the leaves of the session tree."""

    PERSISTED_FIELDS = (
        "host",
        "port",
        "protocol",
        "profile",
        "username",
        "extra_args",
        "icon_key",
    )

    def __init__(
        self,
        name: str,
        host: str = "",
        port: int = StoreConstants.DEFAULT_SSH_PORT,
        protocol: Union[str, ConnectionProtocol] = ConnectionProtocol.SSH,
        profile: str = "",
        username: str = "",
        extra_args: str = "",
        icon_key: str = "",
    ):
        super().__init__(name)
        self._host = host.strip()
        self._port = self._checked_port(port)
        self._protocol = self._checked_protocol(protocol)
        self._profile = profile
        self._username = username.strip()
        self._extra_args = extra_args
        self._icon_key = icon_key

        # Runtime state, never persisted
        self.last_dock_state = "document"
        self.auto_start = False
        self.password: Optional[str] = None

    def __str__(self) -> str:
        return self.get_connection_string()

    def _checked_port(self, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 65535:
            raise SessionValidationError(self._name, [f"Invalid port: {value!r}"])
        return value

    def _checked_protocol(self, value: Any) -> ConnectionProtocol:
        try:
            return ConnectionProtocol.parse(value)
        except ValueError as e:
            raise SessionValidationError(self._name, [str(e)]) from e

    def _set(self, attribute: str, value: Any):
        self._check_writable()
        if getattr(self, attribute) == value:
            return
        setattr(self, attribute, value)
        self._mark_modified()

    @property
    def host(self) -> str:
        return self._host

    @host.setter
    def host(self, value: str):
        self._set("_host", value.strip())

    @property
    def port(self) -> int:
        return self._port

    @port.setter
    def port(self, value: int):
        self._set("_port", self._checked_port(value))

    @property
    def protocol(self) -> ConnectionProtocol:
        return self._protocol

    @protocol.setter
    def protocol(self, value: Union[str, ConnectionProtocol]):
        self._set("_protocol", self._checked_protocol(value))

    @property
    def profile(self) -> str:
        return self._profile

    @profile.setter
    def profile(self, value: str):
        self._set("_profile", value)

    @property
    def username(self) -> str:
        return self._username

    @username.setter
    def username(self, value: str):
        self._set("_username", value.strip())

    @property
    def extra_args(self) -> str:
        return self._extra_args

    @extra_args.setter
    def extra_args(self, value: str):
        self._set("_extra_args", value)

    @property
    def icon_key(self) -> str:
        return self._icon_key

    @icon_key.setter
    def icon_key(self, value: str):
        self._set("_icon_key", value)

    def get_connection_string(self) -> str:
        if self._protocol.uses_port:
            return f"{self._protocol.value}://{self._host}:{self._port}"
        return f"{self._protocol.value}://{self._host}"

    def get_validation_errors(self) -> List[str]:
        errors = []
        if self._protocol.uses_port:
            if not self._host:
                errors.append(_("Host is required for {protocol} sessions").format(
                    protocol=self._protocol.name))
            if self._protocol != ConnectionProtocol.SERIAL and self._port == 0:
                errors.append(_("Port must be between 1 and 65535"))
        return errors

    def validate(self) -> bool:
        errors = self.get_validation_errors()
        if errors:
            self.logger.warning(f"Session validation failed for '{self._name}': {errors}")
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self._name,
            "host": self._host,
            "port": self._port,
            "protocol": self._protocol.value,
            "profile": self._profile,
            "username": self._username,
            "extra_args": self._extra_args,
            "icon_key": self._icon_key,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionItem":
        kwargs = {key: data[key] for key in cls.PERSISTED_FIELDS if key in data}
        for key in ("host", "profile", "username", "extra_args", "icon_key"):
            if key in kwargs and not isinstance(kwargs[key], str):
                raise SessionValidationError(
                    str(data.get("name")), [f"'{key}' must be a string"]
                )
        return cls(data["name"], **kwargs)

    def clone(self) -> "SessionItem":
        copy = SessionItem.from_dict(self.to_dict())
        copy.last_dock_state = self.last_dock_state
        copy.auto_start = self.auto_start
        copy.password = self.password
        return copy


class SessionFolder(SessionNode):
    """An ordered, name-keyed collection of child nodes."""

    def __init__(self, name: str):
        super().__init__(name)
        self._children: Dict[str, SessionNode] = {}
        self._increment = 0
        self._notifier = ChangeNotifier(name)

    def __len__(self) -> int:
        return len(self._children)

    def __iter__(self) -> Iterator[SessionNode]:
        return iter(list(self._children.values()))

    def __contains__(self, item: Union[str, SessionNode]) -> bool:
        if isinstance(item, SessionNode):
            return self._children.get(item.name) is item
        return item in self._children

    @property
    def children(self) -> List[SessionNode]:
        return list(self._children.values())

    @property
    def increment(self) -> int:
        return self._increment

    @property
    def notifier(self) -> ChangeNotifier:
        return self._notifier

    def _on_renamed(self):
        self._notifier.owner_name = self._name

    # --- Change subscription -------------------------------------------

    def subscribe(self, handler: ChangeHandler) -> None:
        self._notifier.subscribe(handler)

    def unsubscribe(self, handler: ChangeHandler) -> None:
        self._notifier.unsubscribe(handler)

    def dispose(self) -> None:
        """Drop every subscriber in this subtree."""
        self._notifier.clear()
        for child in self._children.values():
            child.dispose()

    # --- Mutation --------------------------------------------------------

    def _check_mutable(self):
        if self._notifier.dispatching:
            raise ReentrantMutationError(self._name)
        self._check_writable()

    def add_child(self, child: SessionNode) -> SessionNode:
        """Insert ``child`` at the end, assigning it the next free id."""
        self._check_mutable()
        if child._parent is not None:
            raise NodeOwnershipError(
                child.name, f"it already belongs to '{child._parent.name}'"
            )
        if child is self or self.is_descendant_of(child):
            raise NodeOwnershipError(child.name, "a folder cannot contain itself")
        if child.name in self._children:
            raise DuplicateNameError(child.name, self._name)

        self._attach(child)
        self._mark_modified()
        self._notifier.notify(ChangeType.ADDED, child)
        return child

    def remove_child(self, child: SessionNode) -> SessionNode:
        self._check_mutable()
        if child._parent is not self or self._children.get(child.name) is not child:
            raise NodeNotFoundError(child.name, self._name)

        self._detach(child)
        self._mark_modified()
        self._notifier.notify(ChangeType.REMOVED, child)
        return child

    def _attach(self, child: SessionNode, child_id: Optional[int] = None):
        if child_id is None or any(c._id == child_id for c in self._children.values()):
            child_id = self._increment
        self._increment = max(self._increment, child_id + 1)
        child._id = child_id
        child._parent = self
        self._children[child.name] = child

        registry = self.find_registry()
        if registry is not None:
            for source in sources_in(child):
                registry.register(source)

    def _detach(self, child: SessionNode):
        registry = self.find_registry()
        if registry is not None:
            for source in sources_in(child):
                registry.unregister(source)
        del self._children[child.name]
        child._parent = None

    def _restore_child(self, child: SessionNode, child_id: Optional[int] = None) -> SessionNode:
        """Attach a node read from a document, keeping its persisted id."""
        if child.name in self._children:
            raise DuplicateNameError(child.name, self._name)
        self._attach(child, child_id)
        self._notifier.notify(ChangeType.ADDED, child)
        return child

    def _restore_increment(self, value: int):
        self._increment = max(self._increment, value)

    def _rename_child(self, child: SessionNode, new_name: str):
        self._check_mutable()
        if new_name in self._children:
            raise DuplicateNameError(new_name, self._name)
        self._children = {
            (new_name if node is child else key): node for key, node in self._children.items()
        }

    # --- Queries ---------------------------------------------------------

    def get_count(self) -> int:
        """Number of descendants at every depth."""
        count = len(self._children)
        for child in self._children.values():
            if isinstance(child, SessionFolder):
                count += child.get_count()
        return count

    def flatten(self, cls: Type[N] = SessionNode) -> List[N]:
        """Descendants of type ``cls`` in pre-order."""
        nodes = []
        for child in self._children.values():
            if isinstance(child, cls):
                nodes.append(child)
            if isinstance(child, SessionFolder):
                nodes.extend(child.flatten(cls))
        return nodes

    def get_by_name(self, name: str, cls: Type[N] = SessionNode) -> Optional[N]:
        child = self._children.get(name)
        return child if isinstance(child, cls) else None

    def get_by_id(self, child_id: int, cls: Type[N] = SessionNode) -> Optional[N]:
        for child in self._children.values():
            if child._id == child_id:
                return child if isinstance(child, cls) else None
        return None

    def get_by_name_path(self, names: Sequence[str], cls: Type[N] = SessionNode) -> Optional[N]:
        """Resolve ``names`` relative to this folder."""
        if not names:
            return None
        current: SessionFolder = self
        for name in names[:-1]:
            current = current.get_by_name(name, SessionFolder)
            if current is None:
                return None
        return current.get_by_name(names[-1], cls)

    def get_by_names_string(self, path: str, cls: Type[N] = SessionNode) -> Optional[N]:
        try:
            names = decode_names(path)
        except InvalidPathError as e:
            self.logger.debug(f"Ignoring malformed name path: {e}")
            return None
        return self.get_by_name_path(names, cls)

    def get_by_id_path(self, ids: Sequence[int], cls: Type[N] = SessionNode) -> Optional[N]:
        if not ids:
            return None
        current: SessionFolder = self
        for child_id in ids[:-1]:
            current = current.get_by_id(child_id, SessionFolder)
            if current is None:
                return None
        return current.get_by_id(ids[-1], cls)

    def get_by_id_path_string(self, path: str, cls: Type[N] = SessionNode) -> Optional[N]:
        try:
            ids, leaf_id = decode_id_path(path)
        except InvalidPathError as e:
            self.logger.debug(f"Ignoring malformed id path: {e}")
            return None
        return self.get_by_id_path(ids + [leaf_id], cls)

    def ensure_nodes(self, path: Iterable[str]) -> "SessionFolder":
        """Walk ``path`` from here, creating any missing folders."""
        current = self
        for name in path:
            next_folder = current.get_by_name(name, SessionFolder)
            if next_folder is None:
                next_folder = current.add_child(SessionFolder(name))
            current = next_folder
        return current

    # --- Copying ---------------------------------------------------------

    def clone(self) -> "SessionFolder":
        """Copy of this folder's own attributes, without children."""
        return SessionFolder(self._name)

    def deep_clone(self) -> "SessionFolder":
        """Fully independent copy of this subtree, with fresh ids."""
        copy = self.clone()
        for child in self._children.values():
            if isinstance(child, SessionFolder):
                child_copy = child.deep_clone()
            else:
                child_copy = child.clone()
            copy._restore_child(child_copy)
        return copy


def sources_in(node: SessionNode) -> List[SessionNode]:
    sources = [node] if node.is_source else []
    if isinstance(node, SessionFolder):
        sources.extend(n for n in node.flatten() if n.is_source)
    return sources
