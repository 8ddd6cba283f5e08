"""CSOM XML node builders: actions, object paths and the static root object."""

from __future__ import annotations

import re
from typing import Iterable, Mapping, Optional

_PLACEHOLDER = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
_FIELD = re.compile(r"\s*\.([A-Za-z_][A-Za-z0-9_]*)\s*")

_CURRENT_TEMPLATE = (
    '<StaticProperty Id="0" TypeId="{3747adcd-a3c3-41b9-bfab-4a64dd2f1e0a}" '
    'Name="Current" />'
)


class TemplateError(ValueError):
    """Raised when a node template refers to an unknown field."""


def trim_multiline(text: str) -> str:
    """Join the lines of ``text``, stripping leading and trailing tabs from each."""
    return "".join(line.strip("\t") for line in text.split("\n"))


def render_template(template: str, values: Mapping[str, object]) -> str:
    """Substitute ``{{.Name}}`` placeholders in ``template`` with ``values``."""

    def substitute(match: re.Match) -> str:
        field = _FIELD.fullmatch(match.group(1))
        if field is None:
            raise TemplateError(f"unsupported template expression: {match.group(0)}")
        name = field.group(1)
        if name not in values:
            raise TemplateError(f"can't evaluate field {name}")
        return str(values[name])

    return _PLACEHOLDER.sub(substitute, template)


class _TemplateNode:
    """A node rendered from a template; remembers the error of the last render."""

    def __init__(self, template: str) -> None:
        self.template = template
        self.id = 0
        self.error: Optional[TemplateError] = None

    def _values(self) -> dict:
        return {"ID": self.id}

    def render(self) -> str:
        """Render the node; on failure store the error and return the raw template."""
        self.error = None
        try:
            rendered = render_template(self.template, self._values())
        except TemplateError as exc:
            self.error = exc
            return self.template
        return trim_multiline(rendered)


class Action(_TemplateNode):
    """CSOM action node (query, method call, property assignment)."""

    def __init__(self, template: str) -> None:
        super().__init__(template)
        self.object_id = 0

    def _values(self) -> dict:
        return {**super()._values(), "ObjectID": self.object_id}

    def render(self) -> str:
        """Render the action with its ID and object ID."""
        return super().render()


def _joined(parts: Iterable[str]) -> str:
    return trim_multiline("".join(parts))


def new_action_identity_query() -> Action:
    """Create an ObjectIdentityQuery action."""
    return Action('<ObjectIdentityQuery Id="{{.ID}}" ObjectPathId="{{.ObjectID}}" />')


def new_query_with_props(properties: Iterable[str]) -> Action:
    """Create a query action selecting all properties plus the given ones."""
    return Action(
        '<Query Id="{{.ID}}" ObjectPathId="{{.ObjectID}}">'
        '<Query SelectAllProperties="true">'
        "<Properties>" + _joined(properties) + "</Properties>"
        "</Query>"
        "</Query>"
    )


def new_query_with_child_props(properties: Iterable[str]) -> Action:
    """Create a query action selecting the given properties of child items."""
    return Action(
        '<Query Id="{{.ID}}" ObjectPathId="{{.ObjectID}}">'
        '<Query SelectAllProperties="true">'
        "<Properties />"
        "</Query>"
        '<ChildItemQuery SelectAllProperties="true">'
        "<Properties>" + _joined(properties) + "</Properties>"
        "</ChildItemQuery>"
        "</Query>"
    )


def new_action_method(method_name: str, parameters: Iterable[str]) -> Action:
    """Create a method call action."""
    return Action(
        '<Method Id="{{.ID}}" ObjectPathId="{{.ObjectID}}" Name="' + method_name + '">'
        "<Parameters>" + _joined(parameters) + "</Parameters>"
        "</Method>"
    )


def new_set_property(property_name: str, parameter: str) -> Action:
    """Create a property assignment action."""
    return Action(
        '<SetProperty Id="{{.ID}}" ObjectPathId="{{.ObjectID}}" Name="'
        + property_name
        + '">'
        + parameter
        + "</SetProperty>"
    )


class ObjectPath(_TemplateNode):
    """CSOM object path node."""

    def __init__(self, template: str) -> None:
        super().__init__(template)
        self.parent_id = 0

    def _values(self) -> dict:
        return {**super()._values(), "ParentID": self.parent_id}

    def render(self) -> str:
        """Render the object path with its ID and parent ID."""
        return super().render()


def new_object_property(property_name: str) -> ObjectPath:
    """Create a property object path."""
    return ObjectPath(
        '<Property Id="{{.ID}}" ParentId="{{.ParentID}}" Name="' + property_name + '" />'
    )


def new_object_method(method_name: str, parameters: Iterable[str]) -> ObjectPath:
    """Create a method object path."""
    return ObjectPath(
        '<Method Id="{{.ID}}" ParentId="{{.ParentID}}" Name="' + method_name + '">'
        "<Parameters>" + _joined(parameters) + "</Parameters>"
        "</Method>"
    )


def new_object_identity(identity_path: str) -> ObjectPath:
    """Create an identity object path."""
    return ObjectPath('<Identity Id="{{.ID}}" Name="' + identity_path + '" />')


class Current:
    """The static ``Current`` context object; its IDs are fixed."""

    _FIXED_FIELDS = frozenset({"id", "parent_id"})

    template = _CURRENT_TEMPLATE
    error: Optional[TemplateError] = None
    id = 0
    parent_id = -1

    def __setattr__(self, name: str, value: object) -> None:
        # The root node's identifiers never change; assignments to them are ignored.
        if name in self._FIXED_FIELDS:
            return
        super().__setattr__(name, value)

    def render(self) -> str:
        """Return the static property node."""
        return self.template