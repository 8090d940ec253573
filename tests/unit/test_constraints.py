from katzai.grounding.constraints import ConstraintExtractor


def test_picture_hanging_request_extracts_weight_and_no_drilling():
    constraints = ConstraintExtractor().extract("I need to hang a 20lb picture with no drilling")

    assert constraints.max_weight == 20
    assert constraints.no_drilling is True
    assert constraints.no_tools is None
    assert constraints.max_price is None


def test_unconstrained_question_is_empty():
    constraints = ConstraintExtractor().extract("Where are the light bulbs?")

    assert constraints.is_empty
    assert constraints.to_dict() == {}


def test_price_and_weight_are_not_confused():
    extractor = ConstraintExtractor()

    weight_only = extractor.extract("something that holds under 20 lbs")
    assert weight_only.max_price is None
    assert weight_only.max_weight == 20

    both = extractor.extract("hooks for a 12 pound mirror, budget under $15")
    assert both.max_weight == 12
    assert both.max_price == 15
    assert both.surface_type is None


def test_rental_and_surface_phrases():
    constraints = ConstraintExtractor().extract(
        "I'm renting and the wall is sheetrock, I don't have tools"
    )

    assert constraints.no_damage is True
    assert constraints.no_tools is True
    assert constraints.surface_type == "drywall"


def test_largest_weight_wins():
    constraints = ConstraintExtractor().extract("a 5 lb frame and a 30 lbs mirror")

    assert constraints.max_weight == 30


def test_surface_comes_from_the_wall_not_the_object():
    extractor = ConstraintExtractor()

    assert extractor.extract("hang a 20 lb mirror on drywall").surface_type == "drywall"
    assert extractor.extract("a wooden frame for my brick wall").surface_type == "brick"
    assert extractor.extract("hooks for a metal sign").surface_type is None
    assert extractor.extract("the walls are made of plaster").surface_type == "plaster"
