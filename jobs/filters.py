from functools import reduce
import operator

from django.db.models import Q

from .search import DateRange, Exact, JoinSubstring, Substring, SubstringEitherOf, parse_query


def clause_to_q(clause) -> Q:
    """Translate one search clause into a Q object over Job."""
    if isinstance(clause, Exact):
        return Q(**{clause.field: clause.value})
    if isinstance(clause, Substring):
        return Q(**{f"{clause.field}__icontains": clause.value})
    if isinstance(clause, SubstringEitherOf):
        return reduce(operator.or_, (Q(**{f"{f}__icontains": clause.value}) for f in clause.fields))
    if isinstance(clause, JoinSubstring):
        return Q(**{f"{clause.relation}__{clause.field}__icontains": clause.value})
    if isinstance(clause, DateRange):
        return Q(**{f"{clause.field}__gte": clause.start, f"{clause.field}__lt": clause.end})
    raise TypeError(f"Unsupported search clause: {clause!r}")


def build_filter(clauses) -> Q:
    """AND all clauses together. No clauses matches everything."""
    return reduce(operator.and_, (clause_to_q(c) for c in clauses), Q())


def apply_search(queryset, query: str, now=None):
    """Filter `queryset` once per recognised clause of `query`."""
    for clause in parse_query(query, now=now):
        queryset = queryset.filter(clause_to_q(clause))
    return queryset
