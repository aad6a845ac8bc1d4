"""GraphQL query builder for the CoinLeague subgraph."""

from __future__ import annotations

from typing import Any

GAME_FIELDS = (
    "id",
    "intId",
    "type",
    "duration",
    "status",
    "numCoins",
    "numPlayers",
    "currentPlayers",
    "entry",
    "createdAt",
    "startedAt",
    "startsAt",
    "abortedAt",
    "coinToPlay",
    "endedAt",
)


def build_games_query(
    status: str | None = None,
    skip: int | None = None,
    first: int | None = None,
) -> tuple[str, dict[str, Any]]:
    """Build the games query and its variables.

    Only supplied parameters become variable declarations and arguments;
    without a status the ``where`` clause is omitted entirely. Ordering is
    always newest first.
    """
    declarations: list[str] = []
    arguments: list[str] = []
    variables: dict[str, Any] = {}

    if skip is not None:
        declarations.append("$skip: Int")
        variables["skip"] = skip
    if first is not None:
        declarations.append("$first: Int")
        variables["first"] = first
    if status:
        declarations.append("$status: String!")
        variables["status"] = status
        arguments.append("where: {status: $status}")
    if skip is not None:
        arguments.append("skip: $skip")
    if first is not None:
        arguments.append("first: $first")
    arguments.extend(["orderBy: createdAt", "orderDirection: desc"])

    signature = f"({', '.join(declarations)})" if declarations else ""
    fields = "\n    ".join(GAME_FIELDS)
    query = (
        f"query GetGames{signature} {{\n"
        f"  games({', '.join(arguments)}) {{\n"
        f"    {fields}\n"
        f"  }}\n"
        f"}}"
    )
    return query, variables
