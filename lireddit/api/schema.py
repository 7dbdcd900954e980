from collections.abc import Callable, Mapping
from typing import Any

import strawberry
from strawberry.fastapi import GraphQLRouter
from strawberry.tools import create_type

from lireddit.api.context import get_context
from lireddit.api.operations import MUTATIONS, QUERIES


def _root_type(name: str, handlers: Mapping[str, Callable[..., Any]]) -> type:
    """Build a root type with one field per registry entry, named as registered."""
    fields = []
    for operation, handler in handlers.items():
        field = strawberry.field(resolver=handler, name=operation)
        field.python_name = handler.__name__
        fields.append(field)
    return create_type(name, fields)


Query = _root_type("Query", QUERIES)
Mutation = _root_type("Mutation", MUTATIONS)

schema = strawberry.Schema(query=Query, mutation=Mutation)

graphql_router = GraphQLRouter(schema, context_getter=get_context)
