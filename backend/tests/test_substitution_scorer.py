import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))

from medistock.substitution.scorer import (
    BASE_GUIDELINES,
    MedicineRef,
    availability_from_stock,
    rank,
    score_candidate,
)

NAPA = MedicineRef(
    id=1,
    generic_name="Paracetamol",
    brand_name="Napa",
    manufacturer="Beximco",
    strength="500mg",
    dosage_form="Tablet",
    therapeutic_class="Analgesic",
    price=1.2,
)


def med(id, **fields):
    return MedicineRef(id=id, **fields)


def test_tiers_first_match_wins():
    same_generic = med(2, generic_name="paracetamol ", therapeutic_class="Analgesic")
    same_class = med(3, generic_name="Ibuprofen", therapeutic_class="Analgesic", strength="500mg")
    same_strength = med(4, generic_name="Metformin", strength="500mg", dosage_form="Tablet")
    same_form = med(5, generic_name="Cetirizine", dosage_form="tablet")
    same_maker = med(6, generic_name="Omeprazole", manufacturer="Beximco")
    unrelated = med(7, generic_name="Insulin")

    scores = [score_candidate(NAPA, m, "out_of_stock") for m in
              (same_generic, same_class, same_strength, same_form, same_maker, unrelated)]
    assert scores == [95, 80, 70, 60, 10, 0]


def test_missing_attributes_never_match():
    blank_ref = MedicineRef(id=10)
    assert score_candidate(blank_ref, med(11), "out_of_stock") == 0


def test_availability_bonus_and_clamp():
    candidate = med(2, generic_name="Paracetamol")
    assert score_candidate(NAPA, candidate, "in_stock") == 100
    assert score_candidate(NAPA, candidate, "low_stock") == 100
    assert score_candidate(NAPA, med(3, dosage_form="Tablet"), "in_stock") == 75
    assert score_candidate(NAPA, med(3, dosage_form="Tablet"), "low_stock") == 65


def test_equal_scores_keep_input_order():
    a = med(2, generic_name="Paracetamol", brand_name="Ace", manufacturer="Square", strength="500mg")
    b = med(3, generic_name="Paracetamol", brand_name="Renova", manufacturer="Opsonin", strength="500mg")
    result = rank(NAPA, [a, b], {2: "out_of_stock", 3: "out_of_stock"})
    assert [alt.medicine.brand_name for alt in result.alternatives] == ["Ace", "Renova"]
    assert all(alt.similarity_score == 95 for alt in result.alternatives)


def test_cross_tier_tie_keeps_input_order():
    same_generic = med(2, generic_name="Paracetamol", brand_name="Ace")
    same_class = med(3, generic_name="Ibuprofen", brand_name="Flexi", therapeutic_class="Analgesic")
    availability = {2: "out_of_stock", 3: "in_stock"}

    forward = rank(NAPA, [same_generic, same_class], availability)
    backward = rank(NAPA, [same_class, same_generic], availability)

    assert [alt.similarity_score for alt in forward.alternatives] == [95, 95]
    assert [alt.medicine.brand_name for alt in forward.alternatives] == ["Ace", "Flexi"]
    assert [alt.similarity_score for alt in backward.alternatives] == [95, 95]
    assert [alt.medicine.brand_name for alt in backward.alternatives] == ["Flexi", "Ace"]


def test_rank_sorts_descending_and_limits():
    candidates = [
        med(2, dosage_form="Tablet"),
        med(3, generic_name="Paracetamol", strength="500mg", dosage_form="Tablet"),
        med(4, therapeutic_class="Analgesic", strength="400mg", dosage_form="Tablet"),
        med(5, manufacturer="Beximco"),
    ]
    availability = {2: "in_stock", 3: "low_stock", 4: "in_stock", 5: "in_stock"}
    result = rank(NAPA, candidates, availability, max_results=3)

    assert [alt.medicine.id for alt in result.alternatives] == [3, 4, 2]
    assert [alt.similarity_score for alt in result.alternatives] == [100, 95, 75]
    assert result.alternatives[0].substitution_reason == "Same generic medicine, different brand"
    assert result.alternatives[0].dosage_equivalent == "Same dosage as original"
    assert result.alternatives[1].matched_on == "therapeutic_class"


def test_reference_itself_is_excluded():
    result = rank(NAPA, [NAPA, med(2, generic_name="Paracetamol")], {1: "in_stock", 2: "in_stock"})
    assert [alt.medicine.id for alt in result.alternatives] == [2]


def test_unknown_availability_counts_as_out_of_stock():
    result = rank(NAPA, [med(2, generic_name="Paracetamol")])
    assert result.alternatives[0].availability == "out_of_stock"
    assert result.alternatives[0].similarity_score == 95


def test_empty_candidates_give_empty_result():
    result = rank(NAPA, [], {})
    assert result.alternatives == []
    assert result.substitution_guidelines == []
    assert result.warnings == []
    assert rank(NAPA, [med(2)], {}, max_results=0).alternatives == []


def test_guidelines_and_warnings_are_reported_once():
    candidates = [
        med(2, generic_name="Paracetamol", manufacturer="Square", strength="650mg", dosage_form="Syrup"),
        med(3, generic_name="Paracetamol", manufacturer="Opsonin", strength="500mg", dosage_form="Tablet"),
        med(4, generic_name="Paracetamol", manufacturer="Renata", strength="500mg", dosage_form="Tablet"),
        med(5, generic_name="Paracetamol", manufacturer="ACI", strength="500mg", dosage_form="Tablet"),
    ]
    availability = {2: "in_stock", 3: "out_of_stock", 4: "out_of_stock", 5: "low_stock"}
    result = rank(NAPA, candidates, availability)

    assert result.substitution_guidelines[: len(BASE_GUIDELINES)] == list(BASE_GUIDELINES)
    assert any("administration method" in g for g in result.substitution_guidelines)
    assert result.warnings == [
        "Dosage adjustment may be required for different strengths",
        "Some alternatives are currently out of stock",
        "Some alternatives have limited stock available",
        "Different manufacturers may have varying quality standards",
    ]
    syrup = result.alternatives[0]
    assert syrup.notes == (
        "Different manufacturer, Different dosage form, "
        "Different strength - consult pharmacist for dosage adjustment"
    )
    assert "650mg" in syrup.dosage_equivalent


def test_same_form_and_maker_add_no_extra_notes():
    twin = med(2, generic_name="Paracetamol", manufacturer="Beximco", strength="500mg", dosage_form="Tablet")
    result = rank(NAPA, [twin], {2: "in_stock"})
    assert result.alternatives[0].notes == "No special notes"
    assert result.warnings == []
    assert result.substitution_guidelines == list(BASE_GUIDELINES)


def test_availability_from_stock():
    assert availability_from_stock(50, 10) == "in_stock"
    assert availability_from_stock(10, 10) == "low_stock"
    assert availability_from_stock(1, 10) == "low_stock"
    assert availability_from_stock(0, 10) == "out_of_stock"
    assert availability_from_stock(None, 10) == "out_of_stock"
