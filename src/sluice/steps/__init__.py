from .drop import Drop, drop
from .filter import Filter, filter
from .find import Find, find
from .flat_map import FlatMap, flat_map
from .for_each import ForEach, for_each
from .indexed import AsIndexedPairs, as_indexed_pairs
from .map import Map, map
from .reduce import NOT_PROVIDED, Reduce, reduce
from .some import Every, Some, every, some
from .take import Take, take
from .to_list import ToList, to_list

__all__ = [
    "AsIndexedPairs",
    "Drop",
    "Every",
    "Filter",
    "Find",
    "FlatMap",
    "ForEach",
    "Map",
    "NOT_PROVIDED",
    "Reduce",
    "Some",
    "Take",
    "ToList",
    "as_indexed_pairs",
    "drop",
    "every",
    "filter",
    "find",
    "flat_map",
    "for_each",
    "map",
    "reduce",
    "some",
    "take",
    "to_list",
]
