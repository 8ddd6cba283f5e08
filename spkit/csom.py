"""Assembling CSOM XML request packages from object paths and actions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from spkit.csom_nodes import Action, Current, ObjectPath, trim_multiline

ObjectNode = Union[ObjectPath, Current]

_REQUEST_OPEN = (
    '<Request xmlns="http://schemas.microsoft.com/sharepoint/clientquery/2009" '
    'SchemaVersion="15.0.0.0" LibraryVersion="16.0.0.0" ApplicationName="spkit">'
)


class CompileError(ValueError):
    """Raised when some nodes of a package fail to render.

    ``package`` holds the package text as far as it could be built.
    """

    def __init__(self, message: str, package: str) -> None:
        super().__init__(message)
        self.package = package


@dataclass(frozen=True)
class _ObjectEdge:
    current: ObjectNode
    parent: Optional[ObjectNode]


@dataclass(frozen=True)
class _ActionEdge:
    action: Action
    obj: ObjectNode


class Builder:
    """Collects object paths and actions and compiles them into a CSOM request."""

    def __init__(self) -> None:
        self._objects: List[_ObjectEdge] = []
        self._actions: List[_ActionEdge] = []
        self.add_object(Current(), None)

    def add_object(
        self, obj: ObjectNode, parent: Optional[ObjectNode] = None
    ) -> Tuple[ObjectNode, Optional[ObjectNode]]:
        """Add an object path; the parent defaults to the last added object."""
        if parent is None and self._objects:
            parent = self._objects[-1].current
        self._objects.append(_ObjectEdge(obj, parent))
        return obj, parent

    def add_action(
        self, action: Action, obj: Optional[ObjectNode] = None
    ) -> Tuple[Action, ObjectNode]:
        """Add an action; its target defaults to the last added object."""
        if obj is None and self._objects:
            obj = self._objects[-1].current
        self._actions.append(_ActionEdge(action, obj))
        return action, obj

    def objects(self) -> List[ObjectNode]:
        """Return the object paths in the order they were added."""
        return [edge.current for edge in self._objects]

    def object_id(self, obj: ObjectNode) -> int:
        """Compile the package and return the ID assigned to ``obj``."""
        self.compile()
        return obj.id

    def compile(self) -> str:
        """Assign IDs, render every node and return the request package."""
        rendered_objects = []
        rendered_actions = []
        errors = []

        for index, edge in enumerate(self._objects):
            if index > 1 and edge.parent.id == 0:
                edge.parent.id = self._next_object_id()
            if index > 0 and edge.current.id == 0:
                edge.current.id = self._next_object_id()
                edge.current.parent_id = edge.parent.id
            rendered_objects.append(edge.current.render())
            if edge.current.error is not None:
                errors.append(edge.current.error)

        for edge in self._actions:
            if edge.action.id == 0:
                edge.action.id = self._next_action_id()
                edge.action.object_id = edge.obj.id
            rendered_actions.append(edge.action.render())
            if edge.action.error is not None:
                errors.append(edge.action.error)

        package = trim_multiline(
            _REQUEST_OPEN
            + "<Actions>"
            + "".join(rendered_actions)
            + "</Actions><ObjectPaths>"
            + "".join(rendered_objects)
            + "</ObjectPaths></Request>"
        )
        package = package.replace("<Parameters></Parameters>", "<Parameters />")
        if errors:
            raise CompileError(", ".join(str(err) for err in errors), package)
        return package

    def clone(self) -> "Builder":
        """Return a builder sharing the same nodes but with its own node lists."""
        copy = Builder()
        copy._objects = list(self._objects)
        copy._actions = list(self._actions)
        return copy

    def _next_object_id(self) -> int:
        next_id = 0
        for edge in self._objects:
            if edge.parent is not None and next_id <= edge.parent.id:
                next_id = edge.parent.id + 1
            if next_id <= edge.current.id:
                next_id = edge.current.id + 1
        return next_id

    def _next_action_id(self) -> int:
        next_id = self._next_object_id()
        for edge in self._actions:
            if next_id <= edge.action.id:
                next_id = edge.action.id + 1
        return next_id