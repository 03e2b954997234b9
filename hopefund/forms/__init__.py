"""
WTForms plumbing for JSON APIs.

API payloads are JSON, so they're flattened into a werkzeug MultiDict and fed
to a FlaskForm (CSRF off: API blueprints authenticate with bearer tokens).
`validate_payload` returns the validated form or raises ValidationError with
every message, in field order.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from flask_wtf import FlaskForm
from werkzeug.datastructures import FileStorage, MultiDict
from wtforms import Field
from wtforms.widgets import TextInput

from hopefund.errors import ValidationError

F = TypeVar("F", bound=FlaskForm)

FALSE_VALUES = ("false", "", "0", "off", "n", "no")


def to_multidict(payload: Optional[Mapping[str, Any]]) -> MultiDict:
    md: MultiDict = MultiDict()
    for key, value in (payload or {}).items():
        if value is None:
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        for v in values:
            if v is None:
                continue
            if isinstance(v, bool):
                md.add(key, "1" if v else "0")
            elif isinstance(v, FileStorage):
                md.add(key, v)
            else:
                md.add(key, str(v))
    return md


def form_errors(form: FlaskForm) -> Dict[str, List[str]]:
    return {name: list(errs) for name, errs in form.errors.items() if errs}


def validate_payload(form_cls: Type[F], payload: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> F:
    form = form_cls(formdata=to_multidict(payload), meta={"csrf": False}, **kwargs)
    if not form.validate():
        fields = form_errors(form)
        messages = [msg for name in form._fields for msg in fields.get(name, [])]
        raise ValidationError(messages, fields=fields)
    return form


class ListField(Field):
    """
    Accepts repeated keys or a comma separated string; `data` is a list of
    stripped, non-empty strings.
    """

    widget = TextInput()

    def process_formdata(self, valuelist):
        out: List[str] = []
        for raw in valuelist or []:
            for part in str(raw).split(","):
                part = part.strip()
                if part and part not in out:
                    out.append(part)
        self.data = out

    def _value(self):
        return ", ".join(self.data or [])


class IntListField(ListField):
    def process_formdata(self, valuelist):
        super().process_formdata(valuelist)
        ints: List[int] = []
        for part in self.data:
            try:
                ints.append(int(part))
            except ValueError:
                self.data = ints
                raise ValueError(f"Invalid id: {part}")
        self.data = ints


__all__ = [
    "FALSE_VALUES",
    "IntListField",
    "ListField",
    "form_errors",
    "to_multidict",
    "validate_payload",
]
