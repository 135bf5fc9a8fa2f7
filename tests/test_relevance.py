from vacancy_outreach.services.relevance import is_relevant, normalize_keywords, post_hashtags


def test_keyword_hashtag_match() -> None:
    keywords = normalize_keywords(["devops"])

    assert is_relevant("Ищем инженера #devops #senior", keywords) is True
    assert is_relevant("Ищем инженера #java", keywords) is False


def test_empty_keyword_set_accepts_everything() -> None:
    assert is_relevant("anything at all", frozenset()) is True


def test_keywords_are_normalized_and_case_insensitive() -> None:
    keywords = normalize_keywords([" DevOps ", "#SRE", ""])

    assert keywords == frozenset({"#devops", "#sre"})
    assert is_relevant("Вакансия #SRE", keywords) is True


def test_hashtag_equality_not_substring() -> None:
    keywords = normalize_keywords(["devops"])

    assert post_hashtags("#devopsengineer") == {"#devopsengineer"}
    assert is_relevant("#devopsengineer", keywords) is False
    assert is_relevant("devops without a hashtag", keywords) is False
