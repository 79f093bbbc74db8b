"""
Action timeline: serializable user mutations replayed onto a QueryModel.

Each action is a pydantic model tagged by its ``action`` field, so a list of
plain dicts (as a client would send them) validates into the right types.
"""

import logging
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from .errors import QueryBuilderError
from .model_types import ConditionSpec, Direction, JoinSpec
from .query_model import QueryModel
from .schema_types import SchemaCatalog

logger = logging.getLogger(__name__)


class AddTable(BaseModel):
    action: Literal["add_table"] = "add_table"
    name: str
    force_self_join: bool = False


class RemoveTable(BaseModel):
    action: Literal["remove_table"] = "remove_table"
    key: str


class SetAlias(BaseModel):
    action: Literal["set_alias"] = "set_alias"
    key: str
    alias: Optional[str] = None


class ToggleColumn(BaseModel):
    action: Literal["toggle_column"] = "toggle_column"
    key: str
    column: str


class SetColumns(BaseModel):
    action: Literal["set_columns"] = "set_columns"
    key: str
    columns: Optional[List[str]] = None


class SelectAll(BaseModel):
    action: Literal["select_all"] = "select_all"


class SelectNone(BaseModel):
    action: Literal["select_none"] = "select_none"


class AddJoin(BaseModel):
    action: Literal["add_join"] = "add_join"
    join: JoinSpec


class UpdateJoin(BaseModel):
    action: Literal["update_join"] = "update_join"
    index: int
    changes: Dict[str, Any] = Field(default_factory=dict)


class RemoveJoin(BaseModel):
    action: Literal["remove_join"] = "remove_join"
    index: int


class AddCondition(BaseModel):
    action: Literal["add_condition"] = "add_condition"
    condition: ConditionSpec = Field(default_factory=ConditionSpec)


class UpdateCondition(BaseModel):
    action: Literal["update_condition"] = "update_condition"
    index: int
    changes: Dict[str, Any] = Field(default_factory=dict)


class RemoveCondition(BaseModel):
    action: Literal["remove_condition"] = "remove_condition"
    index: int


class AddOrder(BaseModel):
    action: Literal["add_order"] = "add_order"
    column: str
    direction: Direction = 'ASC'


class RemoveOrder(BaseModel):
    action: Literal["remove_order"] = "remove_order"
    column: str


class ToggleDirection(BaseModel):
    action: Literal["toggle_direction"] = "toggle_direction"
    column: str


class AddGroup(BaseModel):
    action: Literal["add_group"] = "add_group"
    column: str


class RemoveGroup(BaseModel):
    action: Literal["remove_group"] = "remove_group"
    column: str


class SetLimit(BaseModel):
    action: Literal["set_limit"] = "set_limit"
    value: Optional[int] = None


class SetOffset(BaseModel):
    action: Literal["set_offset"] = "set_offset"
    value: Optional[int] = None


class Clear(BaseModel):
    action: Literal["clear"] = "clear"


Action = Annotated[
    Union[
        AddTable, RemoveTable, SetAlias,
        ToggleColumn, SetColumns, SelectAll, SelectNone,
        AddJoin, UpdateJoin, RemoveJoin,
        AddCondition, UpdateCondition, RemoveCondition,
        AddOrder, RemoveOrder, ToggleDirection,
        AddGroup, RemoveGroup,
        SetLimit, SetOffset, Clear,
    ],
    Field(discriminator="action"),
]

_action_list = TypeAdapter(List[Action])


def parse_actions(raw: List[Dict[str, Any]]) -> List[Action]:
    """Validate a list of action dicts into typed actions."""
    return _action_list.validate_python(raw)


def apply_action(model: QueryModel, action: Action) -> None:
    """Apply one action. QueryBuilderError propagates and leaves the model unchanged."""
    if isinstance(action, AddTable):
        model.add_table(action.name, force_self_join=action.force_self_join)
    elif isinstance(action, RemoveTable):
        model.remove_table(action.key)
    elif isinstance(action, SetAlias):
        model.set_alias(action.key, action.alias)
    elif isinstance(action, ToggleColumn):
        model.toggle_column(action.key, action.column)
    elif isinstance(action, SetColumns):
        model.set_columns(action.key, action.columns)
    elif isinstance(action, SelectAll):
        model.select_all()
    elif isinstance(action, SelectNone):
        model.select_none()
    elif isinstance(action, AddJoin):
        model.add_join(action.join.model_copy())
    elif isinstance(action, UpdateJoin):
        model.update_join(action.index, **action.changes)
    elif isinstance(action, RemoveJoin):
        model.remove_join(action.index)
    elif isinstance(action, AddCondition):
        model.add_condition(action.condition.model_copy())
    elif isinstance(action, UpdateCondition):
        model.update_condition(action.index, **action.changes)
    elif isinstance(action, RemoveCondition):
        model.remove_condition(action.index)
    elif isinstance(action, AddOrder):
        model.add_order(action.column, action.direction)
    elif isinstance(action, RemoveOrder):
        model.remove_order(action.column)
    elif isinstance(action, ToggleDirection):
        model.toggle_direction(action.column)
    elif isinstance(action, AddGroup):
        model.add_group(action.column)
    elif isinstance(action, RemoveGroup):
        model.remove_group(action.column)
    elif isinstance(action, SetLimit):
        model.set_limit(action.value)
    elif isinstance(action, SetOffset):
        model.set_offset(action.value)
    elif isinstance(action, Clear):
        model.clear()
    else:
        raise TypeError(f"Unknown action type: {type(action).__name__}")


class RejectedAction(BaseModel):
    index: int
    action: str
    error: str


class ReplayResult(BaseModel):
    model: QueryModel
    applied: int = 0
    rejected: List[RejectedAction] = Field(default_factory=list)


def replay(
    actions: List[Union[Action, Dict[str, Any]]],
    catalog: Optional[SchemaCatalog] = None,
    model: Optional[QueryModel] = None,
    stop_on_error: bool = True,
) -> ReplayResult:
    """
    Apply a timeline of actions in order.

    A rejected action is recorded and, unless stop_on_error is False, ends
    the replay. The model keeps every action applied before the rejection.
    """
    if model is None:
        model = QueryModel(catalog=catalog)
    elif catalog is not None:
        model.attach_catalog(catalog)

    typed = [a if isinstance(a, BaseModel) else parse_actions([a])[0] for a in actions]

    result = ReplayResult(model=model)
    for i, action in enumerate(typed):
        try:
            apply_action(model, action)
            result.applied += 1
        except QueryBuilderError as e:
            logger.info(f"[replay] Action {i} ({action.action}) rejected: {e}")
            result.rejected.append(RejectedAction(index=i, action=action.action, error=str(e)))
            if stop_on_error:
                break

    return result
