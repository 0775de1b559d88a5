"""
specmock replace state

Where in a payload a value is being generated. States are immutable, every
``with_*`` call returns a new instance, so one state can be shared by
concurrent requests.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from ..schema import Schema


@dataclass(frozen=True)
class ReplaceState:
    """
    Position of the current value.

    Attributes:
        name_path: Property names from the payload root to the value
        element_index: Index inside the closest enclosing array
        is_header: Value is a header
        is_path_param: Value is a path parameter
        content_type: Content type of the enclosing payload
        is_content_read_only: Generating a response, readOnly fields allowed
        is_content_write_only: Generating a request, writeOnly fields allowed
    """

    name_path: Tuple[str, ...] = ()
    element_index: int = 0
    is_header: bool = False
    is_path_param: bool = False
    content_type: str = ''
    is_content_read_only: bool = False
    is_content_write_only: bool = False

    def with_name(self, name: str) -> 'ReplaceState':
        return replace(self, name_path=(*self.name_path, name))

    def with_element_index(self, index: int) -> 'ReplaceState':
        return replace(self, element_index=index)

    def with_header(self) -> 'ReplaceState':
        return replace(self, is_header=True)

    def with_path_param(self) -> 'ReplaceState':
        return replace(self, is_path_param=True)

    def with_content_type(self, content_type: str) -> 'ReplaceState':
        return replace(self, content_type=content_type)

    def with_read_only(self) -> 'ReplaceState':
        return replace(self, is_content_read_only=True)

    def with_write_only(self) -> 'ReplaceState':
        return replace(self, is_content_write_only=True)

    def is_match_schema_read_write_to_state(self, schema: Optional[Schema]) -> bool:
        """
        Whether a property belongs in the payload being generated.

        readOnly properties only appear in responses and writeOnly properties
        only in requests. Path parameters are URL segments and always match.
        """
        if schema is None or self.is_path_param:
            return True
        if schema.read_only and not self.is_content_read_only:
            return False
        if schema.write_only and not self.is_content_write_only:
            return False
        return True
