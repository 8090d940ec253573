from dataclasses import replace

from katzai.dialogue.models import Conversation
from katzai.grounding.constraints import ConstraintExtractor, Constraints
from katzai.grounding.context import ContextAssembler, StorePolicy


def _by_sku(items, *skus):
    index = {item.sku: item for item in items}
    return [index[sku] for sku in skus]


def test_zero_stock_items_never_reach_the_model(demo_items, policy):
    items = list(demo_items)
    items[0] = replace(items[0], stock=0)

    context = ContextAssembler().assemble("hooks?", [], items, policy, Constraints())

    assert items[0].sku not in context.allowed_skus
    assert items[0].sku not in context.inventory_text
    assert len(context.candidate_items) == len(items) - 1


def test_assembly_is_deterministic(demo_items, policy):
    constraints = ConstraintExtractor().extract("no drilling please, 20 lbs")
    history = Conversation()
    history.append("user", "hi")
    history.append("assistant", "Hello! How can I help?")

    assembler = ContextAssembler()
    first = assembler.assemble("hooks?", history.turns, demo_items, policy, constraints)
    second = assembler.assemble("hooks?", history.turns, demo_items, policy, constraints)

    assert first.inventory_text == second.inventory_text
    assert first.policy_text == second.policy_text
    assert first.constraint_text == second.constraint_text
    assert first.allowed_sku_list == second.allowed_sku_list


def test_picture_hanging_inventory_marks_weak_strips(demo_items, policy):
    items = _by_sku(demo_items, "CMD-STRIPS-LG", "MONKEY-HOOK-10")
    constraints = ConstraintExtractor().extract("I need to hang a 20lb picture with no drilling")

    context = ContextAssembler().assemble("hang it", [], items, policy, constraints)

    assert context.allowed_skus == {"CMD-STRIPS-LG", "MONKEY-HOOK-10"}
    assert context.eligible_skus == {"MONKEY-HOOK-10"}
    assert "holds 16 lbs" in context.violations["CMD-STRIPS-LG"][0]
    assert "Fails customer constraints" in context.inventory_text
    assert "NO DRILLING" in context.constraint_text
    assert "at least 20 lbs" in context.constraint_text


def test_policy_and_constraints_render_separately(demo_items):
    policy = StorePolicy(custom_instructions="Mention the weekend sale")
    context = ContextAssembler().assemble(
        "anything?", [], demo_items, policy, Constraints()
    )

    assert context.policy_text.startswith("STORE POLICIES:")
    assert "Mention the weekend sale" in context.policy_text
    assert context.constraint_text == "CUSTOMER CONSTRAINTS: None specified."


def test_empty_inventory_renders_placeholder(policy):
    context = ContextAssembler().assemble("anything?", [], [], policy, Constraints())

    assert context.allowed_skus == frozenset()
    assert "No matching products" in context.inventory_text


def test_history_is_windowed(demo_items, policy):
    history = Conversation()
    for index in range(10):
        history.append("user" if index % 2 == 0 else "assistant", f"message {index}")

    context = ContextAssembler(history_window=6).assemble(
        "latest", history.turns, demo_items, policy, Constraints()
    )

    assert [turn.content for turn in context.history] == [f"message {i}" for i in range(4, 10)]


def test_unknown_attributes_are_not_violations(demo_items, policy):
    stud_finder = _by_sku(demo_items, "STUD-FINDER-DIG")
    constraints = Constraints(max_weight=50, no_drilling=True, surface_type="brick")

    context = ContextAssembler().assemble("?", [], stud_finder, policy, constraints)

    assert context.eligible_skus == {"STUD-FINDER-DIG"}
