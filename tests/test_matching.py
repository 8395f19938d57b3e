from applylink.matching import find_best_match, normalize_title, title_score


def test_normalize_title():
    assert normalize_title("Sr. Analyst (M&A) - NYC") == "sr analyst ma  nyc"


def test_containment_scores_100():
    assert title_score("Investment Banking Analyst", "2026 Investment Banking Analyst") == 100


def test_location_bonus():
    assert title_score("Trader", "Trader", "New York", "New York, NY") == 110
    assert title_score("Trader", "Trader", "London", "New York, NY") == 100


def test_word_overlap_is_scaled():
    # 2 of 3 significant words match
    score = title_score("Equity Research Associate", "Research Associate Intern Program")
    assert round(score, 2) == round(2 / 3 * 80, 2)


def test_unrelated_title_scores_zero():
    assert title_score("Investment Banking Analyst", "Barista") == 0
    assert title_score("!!!", "Analyst") == 0


def _best(items, title, location=None):
    return find_best_match(
        items, title, location,
        get_title=lambda i: i["title"],
        get_location=lambda i: i.get("location"),
    )


def test_find_best_match_prefers_highest_score():
    items = [
        {"title": "Operations Associate"},
        {"title": "Investment Banking Analyst", "location": "London"},
        {"title": "Investment Banking Analyst", "location": "New York"},
    ]
    assert _best(items, "Investment Banking Analyst", "New York") is items[2]


def test_find_best_match_ties_keep_first():
    items = [{"title": "Analyst"}, {"title": "Analyst"}]
    assert _best(items, "Analyst") is items[0]


def test_find_best_match_threshold():
    items = [{"title": "Credit Risk Manager"}]
    # 1 of 3 words: ~26.7, below 40
    assert _best(items, "Equity Risk Analyst") is None
    assert _best([], "Analyst") is None
