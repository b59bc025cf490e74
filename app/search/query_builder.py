"""
Construction structurée des requêtes SELECT.

Chaque fragment SQL (colonne, jointure, prédicat, tri) porte ses propres
paramètres nommés, écrits `{nom}` dans le gabarit. Au rendu, chaque nom reçoit
un placeholder positionnel asyncpg (`$1`, `$2`...), partagé entre tous les
fragments qui l'utilisent.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Fragment:
    """Morceau de SQL et ses paramètres nommés."""
    template: str
    params: Dict[str, Any] = field(default_factory=dict)


def sql(template: str, **params) -> Fragment:
    """Raccourci : sql('sale.category = {category}', category='food')."""
    return Fragment(template, params)


@dataclass
class SelectQuery:
    """SELECT ... FROM ... [JOIN] WHERE p1 AND p2 ... ORDER BY ... LIMIT/OFFSET."""
    table: str
    columns: List[Fragment] = field(default_factory=list)
    joins: List[Fragment] = field(default_factory=list)
    predicates: List[Fragment] = field(default_factory=list)
    order_by: List[str] = field(default_factory=list)
    limit: Optional[int] = None
    offset: Optional[int] = None

    def select(self, *columns: Fragment) -> "SelectQuery":
        self.columns.extend(columns)
        return self

    def join(self, fragment: Fragment) -> "SelectQuery":
        self.joins.append(fragment)
        return self

    def where(self, *predicates: Fragment) -> "SelectQuery":
        self.predicates.extend(predicates)
        return self

    def order(self, *clauses: str) -> "SelectQuery":
        self.order_by.extend(clauses)
        return self

    def paginate(self, limit: Optional[int], offset: Optional[int] = None) -> "SelectQuery":
        self.limit = limit
        self.offset = offset
        return self

    def render(self) -> Tuple[str, List[Any]]:
        """Renvoie (sql, args) prêt pour `conn.fetch(sql, *args)`.

        Raises:
            ValueError: un même nom de paramètre lié à deux valeurs différentes.
        """
        binder = _Binder()
        parts = ["SELECT " + ",\n  ".join(binder.render(c) for c in self.columns or [sql("*")])]
        parts.append(f"FROM {self.table}")
        parts.extend(binder.render(j) for j in self.joins)
        if self.predicates:
            parts.append("WHERE " + "\n  AND ".join(binder.render(p) for p in self.predicates))
        if self.order_by:
            parts.append("ORDER BY " + ", ".join(self.order_by))
        if self.limit is not None:
            parts.append(binder.render(sql("LIMIT {_limit}", _limit=int(self.limit))))
        if self.offset is not None:
            parts.append(binder.render(sql("OFFSET {_offset}", _offset=int(self.offset))))
        return "\n".join(parts), binder.args


class _Binder:
    """Attribue les numéros de placeholders dans l'ordre d'apparition."""

    def __init__(self):
        self.args: List[Any] = []
        self._positions: Dict[str, int] = {}

    def bind(self, name: str, value: Any) -> str:
        if name in self._positions:
            index = self._positions[name]
            if self.args[index - 1] != value:
                raise ValueError(f"Parameter '{name}' bound to two different values")
            return f"${index}"
        self.args.append(value)
        self._positions[name] = len(self.args)
        return f"${len(self.args)}"

    def render(self, fragment: Fragment) -> str:
        if not fragment.params:
            return fragment.template
        placeholders = {name: self.bind(name, value) for name, value in fragment.params.items()}
        return fragment.template.format(**placeholders)
