"""Tests for near-miss suggestions"""

from contract_transcode.suggest import similarity, suggest


def describe_similarity():
    def identical_names_score_one(expect):
        expect(similarity("transfer", "transfer")) == 1.0

    def ignores_case(expect):
        expect(similarity("Transfer", "transfer")) == 1.0

    def transposed_letters_score_high(expect):
        expect(similarity("naem", "name")) == 0.75

    def unrelated_names_score_low(expect):
        expect(similarity("total_supply", "x") < 0.2) == True


def describe_suggest():
    def finds_close_match(expect):
        expect(suggest("naem", ["name", "decimals", "tags"])) == ["name"]

    def orders_by_similarity(expect):
        expect(suggest("transfr", ["transfer_from", "transfer", "approve"])) == [
            "transfer",
            "transfer_from",
        ]

    def ties_keep_candidate_order(expect):
        expect(suggest("ab", ["ax", "ay", "az"], threshold=0.5)) == ["ax", "ay", "az"]

    def limits_results(expect):
        expect(suggest("ab", ["ax", "ay", "az"], max_results=2, threshold=0.5)) == ["ax", "ay"]

    def drops_candidates_below_threshold(expect):
        expect(suggest("value", ["owner", "spender"])) == []

    def skips_exact_match_and_duplicates(expect):
        expect(suggest("to", ["to", "too", "too"])) == ["too"]

    def handles_no_candidates(expect):
        expect(suggest("anything", [])) == []
