# backend/app/services/chart_state.py
"""
Chart configuration transitions.

The configuration is an immutable value; each UI action is one of a closed
set of commands and ``reduce_config`` returns a new configuration for it.
"""
from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import Field

from ..schemas.analytics import (
    AggregationMode,
    ChartConfiguration,
    ChartFilter,
    SortDirection,
    SortKey,
)
from ..schemas.base import ValueObject


class SetAxis(ValueObject):
    type: Literal["set_axis"] = "set_axis"
    axis: Literal["group", "value"]
    value: str


class SetAggregation(ValueObject):
    type: Literal["set_aggregation"] = "set_aggregation"
    mode: AggregationMode


class SetSort(ValueObject):
    type: Literal["set_sort"] = "set_sort"
    key: SortKey
    direction: SortDirection


class AddFilter(ValueObject):
    type: Literal["add_filter"] = "add_filter"
    column: str
    value: Any = None


class SetRangeFilter(ValueObject):
    type: Literal["set_range_filter"] = "set_range_filter"
    column: str
    low: Optional[float] = None
    high: Optional[float] = None


class ResetFilters(ValueObject):
    type: Literal["reset_filters"] = "reset_filters"


ChartCommand = Annotated[
    Union[SetAxis, SetAggregation, SetSort, AddFilter, SetRangeFilter, ResetFilters],
    Field(discriminator="type"),
]


def _replace_filter(config: ChartConfiguration, new: ChartFilter) -> ChartConfiguration:
    kept = tuple(f for f in config.filters if f.column != new.column)
    return config.model_copy(update={"filters": kept + (new,)})


def reduce_config(config: ChartConfiguration, command: ChartCommand) -> ChartConfiguration:
    if isinstance(command, SetAxis):
        group, value = config.group_key_column, config.value_column
        if command.axis == "group":
            # picking the current value column swaps the two axes
            if command.value == value:
                return config.model_copy(update={"group_key_column": value, "value_column": group})
            return config.model_copy(update={"group_key_column": command.value})
        if command.value == group:
            return config.model_copy(update={"value_column": group, "group_key_column": value})
        return config.model_copy(update={"value_column": command.value})

    if isinstance(command, SetAggregation):
        return config.model_copy(update={"aggregation_mode": command.mode})

    if isinstance(command, SetSort):
        return config.model_copy(update={"sort_key": command.key, "sort_direction": command.direction})

    if isinstance(command, AddFilter):
        return _replace_filter(config, ChartFilter(column=command.column, kind="categorical", value=command.value))

    if isinstance(command, SetRangeFilter):
        return _replace_filter(
            config,
            ChartFilter(column=command.column, kind="range", low=command.low, high=command.high),
        )

    if isinstance(command, ResetFilters):
        return config.model_copy(update={"filters": ()})

    raise ValueError(f"Unsupported chart command: {command!r}")
