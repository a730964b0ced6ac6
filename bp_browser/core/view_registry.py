from __future__ import annotations
from typing import Any, Dict, List, Type

from .dataset import Dataset
from .base_view import BaseView


class ViewRegistry:
    """
    Id -> view class lookup, so a presentation layer can list and build charts
    without importing each view.

    Classes are stored, not instances; every `create` returns a fresh view
    bound to the Dataset it is given. Ids are unique per registry.
    """

    def __init__(self):
        self._views: Dict[str, Type[BaseView]] = {}

    def __contains__(self, view_id: str) -> bool:
        return view_id in self._views

    def register(self, view_cls: Type[BaseView]) -> None:
        """
        :param view_cls: a {@link BaseView} subclass with a unique 'id'

        Raises:
            TypeError: if view_cls is not a BaseView subclass
            ValueError: if its id is already taken
        """
        if not isinstance(view_cls, type) or not issubclass(view_cls, BaseView):
            raise TypeError(f"{view_cls!r} is not a BaseView subclass")

        if view_cls.id in self._views:
            raise ValueError(f"View '{view_cls.id}' already registered")

        self._views[view_cls.id] = view_cls

    def get(self, view_id: str) -> Type[BaseView]:
        """
        Raises:
            KeyError: for an unknown id
        """
        try:
            return self._views[view_id]
        except KeyError:
            raise KeyError(f"View '{view_id}' not found")

    def create(self, view_id: str, dataset: Dataset, **kwargs: Any) -> BaseView:
        """
        Build the view registered under `view_id`.

        Keyword arguments (now, phase, parameter, ...) go to the view's constructor.
        """
        return self.get(view_id)(dataset, **kwargs)

    def all_classes(self) -> List[Type[BaseView]]:
        """Registered classes in registration order."""
        return list(self._views.values())

    def menu(self) -> List[Dict[str, str]]:
        """[{"id": ..., "label": ...}] for navigation elements."""
        return [{"id": cls.id, "label": cls.label} for cls in self._views.values()]
