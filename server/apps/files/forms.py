"""Request validation for the files API."""

from typing import Final

from django import forms

from server.apps.files.logic.file_operations import (
    MAX_PAGE_LIMIT,
    MAX_PAGE_NUMBER,
    SORT_DIRECTIONS,
    SORT_FIELDS,
)

_DEFAULT_LIMIT: Final = 10


class FileListQueryForm(forms.Form):
    """Query parameters of the file listing."""

    page = forms.IntegerField(
        min_value=1,
        max_value=MAX_PAGE_NUMBER,
        required=False,
    )
    limit = forms.IntegerField(
        min_value=1,
        max_value=MAX_PAGE_LIMIT,
        required=False,
    )
    sortBy = forms.ChoiceField(  # noqa: N815
        choices=[(field, field) for field in SORT_FIELDS],
        required=False,
    )
    sortType = forms.ChoiceField(  # noqa: N815
        choices=[(direction, direction) for direction in SORT_DIRECTIONS],
        required=False,
    )

    def clean_page(self) -> int:
        """Default to the first page."""
        return self.cleaned_data['page'] or 1

    def clean_limit(self) -> int:
        """Default to ten files per page."""
        return self.cleaned_data['limit'] or _DEFAULT_LIMIT

    def clean_sortBy(self) -> str:  # noqa: N802
        """Default to sorting by upload time."""
        return self.cleaned_data['sortBy'] or 'uploadedAt'

    def clean_sortType(self) -> str:  # noqa: N802
        """Default to newest first."""
        return self.cleaned_data['sortType'] or 'desc'
