"""Claims path pointers for JSON-based credentials."""

from typing import Any, Sequence

from .error import ClaimsPathError


class _Absent:
    """Marker for a value that is not present in the credential."""

    def __repr__(self) -> str:
        return "Absent"

    def __bool__(self) -> bool:
        return False


Absent = _Absent()


class ClaimsPathPointer:
    """A pointer into a JSON structure, identifying one claim value in a VC.

    Example:
    {
        "name": "Arthur Dent",
        "address": {
            "street_address": "42 Market Street",
            "locality": "Milliways",
            "postal_code": "12345"
        },
        "degrees": [
            {
                "type": "Bachelor of Science",
                "university": "University of Betelgeuse"
            },
            {
                "type": "Master of Science",
                "university": "University of Betelgeuse"
            }
        ],
        "nationalities": ["British", "Betelgeusian"]
    }

    The following shows examples of claims path pointers and the respective selected
    values:
    - ["name"]: `"Arthur Dent"`.
    - ["address"]: the address object with all of its sub-claims.
    - ["address", "street_address"]: `"42 Market Street"`.
    - ["degrees", null, "type"]: `["Bachelor of Science", "Master of Science"]`,
      the type of every entry of the degrees array, in array order.
    - ["nationalities", 1]: `"Betelgeusian"`.

    A key that is not present yields `Absent`; a path that does not fit the shape
    of the value (indexing an object, selecting a key from a string, ...) raises
    `ClaimsPathError`.
    """

    def __init__(self, path: Sequence[str | int | None]):
        """Init the path pointer."""
        if not path:
            raise ClaimsPathError("Claims path must contain at least one component")
        self.path = list(path)

    @staticmethod
    def _str_component(component: str, current: Any) -> Any:
        """Handle a str component."""
        if isinstance(current, list):
            projected = []
            for element in current:
                if not isinstance(element, dict) or component not in element:
                    raise ClaimsPathError(
                        f"Attempted to select {component!r} from every array element "
                        "but an element is not an object holding it"
                    )
                projected.append(element[component])
            return projected
        if isinstance(current, dict):
            return current.get(component, Absent)
        raise ClaimsPathError(
            "Attempted to step into value by key when value is not an object or array"
        )

    @staticmethod
    def _null_component(current: Any) -> Any:
        """Handle a null component."""
        if not isinstance(current, list):
            raise ClaimsPathError(
                "Attempted to select all elements of list but got value that is not a list"
            )
        return current

    @staticmethod
    def _int_component(component: int, current: Any) -> Any:
        """Handle an int component."""
        if not isinstance(current, list):
            raise ClaimsPathError(
                "Attempted to step into value by index when value is not a list"
            )
        if component >= len(current):
            return Absent
        return current[component]

    def walk(self, current: Any, start: int = 0) -> Any:
        """Apply the path components from `start` on to `current`."""
        for component in self.path[start:]:
            if isinstance(component, str):
                current = self._str_component(component, current)
            elif component is None:
                current = self._null_component(current)
            elif (
                isinstance(component, int)
                and not isinstance(component, bool)
                and component > -1
            ):
                current = self._int_component(component, current)
            else:
                raise ClaimsPathError(
                    f"Invalid type {type(component).__name__} component in path pointer"
                )
            if current is Absent:
                return Absent
        return current

    def resolve(self, source: Any) -> Any:
        """Resolve a value from a source object using this path pointer."""
        return self.walk(source)
