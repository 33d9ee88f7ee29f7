"""Rule Tree Evaluator

One depth-first, left-to-right walk shared by both modes. The accumulator
decides whether the walk continues after a violation; every step returns
that decision so a fail-fast stop unwinds immediately.

Message resolution for a violation, first present wins:
1. the rule's own message
2. the nearest enclosing composite message (Maybe, TupleOf, Each)
3. the field plan's message
4. the generated default

Plan and composite messages stay inside their own tree. A Nested rule
starts the nested tree with only its own message inherited.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterator

from vetted.core.errors import ErrorCode
from .errors import Violation, ViolationAccumulator
from .path import ROOT, FieldPath, PathSegment, render_path
from .plan import MISSING, FieldPlan, PayloadShape, RecordTree, RuleTree
from .rules import Expectation, Nested, Rule

if TYPE_CHECKING:
    from .registry import SchemaRegistry


MISSING_FIELD = Expectation("required", "present", "missing", ErrorCode.E2001_REQUIRED_FIELD_MISSING)


class Evaluator:
    """Walks a rule tree over a value, feeding violations to an accumulator.

    Stateless apart from the registry used to resolve Nested rules, so one
    instance may serve any number of threads.
    """

    __slots__ = ("registry",)

    def __init__(self, registry: SchemaRegistry):
        self.registry = registry

    def run(self, tree: RuleTree, value: Any, accumulator: ViolationAccumulator) -> ViolationAccumulator:
        self._tree(tree, value, ROOT, None, accumulator)
        return accumulator

    def _entries(self, tree: RuleTree, value: Any) -> Iterator[tuple[PathSegment, Any, FieldPlan]]:
        if isinstance(tree, RecordTree):
            for name, item, plan in tree.payload(value):
                yield PathSegment.field(name), item, plan
            return
        variant = tree.variant_for(value)
        segment = PathSegment.position if variant.shape is PayloadShape.POSITIONAL else PathSegment.field
        for key, item, plan in variant.payload(value):
            yield segment(key), item, plan

    def _tree(self, tree: RuleTree, value: Any, path: FieldPath, inherited: str | None,
              acc: ViolationAccumulator) -> bool:
        for segment, item, plan in self._entries(tree, value):
            child, message = (*path, segment), plan.message or inherited
            if item is MISSING:
                if not plan.admits_absence:
                    if not acc.add(Violation(child, MISSING_FIELD, MISSING_FIELD.observed,
                                             message or MISSING_FIELD.describe(render_path(child)))): return False
                    continue
                item = None
            if not self._rules(plan.rules, item, child, message, acc): return False
        return True

    def _rules(self, rules: tuple[Rule, ...], value: Any, path: FieldPath, inherited: str | None,
               acc: ViolationAccumulator) -> bool:
        for rule in rules:
            if not self._rule(rule, value, path, inherited, acc): return False
        return True

    def _rule(self, rule: Rule, value: Any, path: FieldPath, inherited: str | None,
              acc: ViolationAccumulator) -> bool:
        if isinstance(rule, Nested):
            return self._tree(self.registry.get_or_compile(rule.target), value, path, rule.message, acc)

        if (expectation := rule.evaluate(value)) is not None:
            message = rule.own_message(expectation) or inherited or expectation.describe(render_path(path))
            if not acc.add(Violation(path, expectation, expectation.observed, message)): return False

        for descent in rule.descend(value):
            child = path if descent.segment is None else (*path, descent.segment)
            if not self._rules(descent.rules, descent.value, child, descent.message or inherited, acc): return False
        return True
