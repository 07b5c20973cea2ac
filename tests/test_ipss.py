"""Tests for IPSS extraction."""

import pytest

from ehrreport.pipeline.stage_ipss import extract_ipss


IPSS_BODY = """\
Paciente refere melhora do jato urinário.
**IPSS**
1- Esvaziamento incompleto > 2
2- Frequência > 3
3- Intermitência > 1
4- Urgência > 0
5- Jato fraco > 4
6- Esforço para urinar > 1
7- Noctúria > 2
QUALIDADE DE VIDA: 3
**CONDUTA**
8- Não é pergunta > 1
Manter tansulosina."""


class TestExtractIpss:
    """Tests for IPSS block parsing."""

    @pytest.fixture
    def ipss(self):
        return extract_ipss(IPSS_BODY)

    def test_all_questions(self, ipss):
        assert [e.question_number for e in ipss.entries] == [1, 2, 3, 4, 5, 6, 7]
        assert ipss.entries[0].question_text == "Esvaziamento incompleto"
        assert ipss.entries[4].score == 4
        assert ipss.missing == []

    def test_quality_of_life_kept_verbatim(self, ipss):
        assert ipss.quality_of_life == "QUALIDADE DE VIDA: 3"
        assert ipss.quality_of_life_score == 3

    def test_total(self, ipss):
        assert ipss.total == 13

    def test_block_ends_at_next_marker(self):
        body = "**IPSS**\n1- Esvaziamento > 2\n**CONDUTA**\n2- Frequência > 3"
        ipss = extract_ipss(body)
        assert [e.question_number for e in ipss.entries] == [1]

    def test_no_ipss_block(self):
        ipss = extract_ipss("Paciente estável.\n1- Não é IPSS > 2")
        assert ipss.is_empty
        assert ipss.missing == [f"question_{n}" for n in range(1, 8)] + ["quality_of_life"]

    def test_invalid_scores_and_numbers_skipped(self):
        body = "**IPSS**\n1- Esvaziamento > 9\n0- Zero > 1\n8- Oito > 1\n2- Frequência > 5"
        ipss = extract_ipss(body)
        assert [(e.question_number, e.score) for e in ipss.entries] == [(2, 5)]

    def test_first_answer_wins(self):
        ipss = extract_ipss("**IPSS**\n1- Esvaziamento > 2\n1- Esvaziamento > 4")
        assert [e.score for e in ipss.entries] == [2]

    def test_partial_questionnaire(self):
        ipss = extract_ipss("** IPSS **\n3- Intermitência > 1\nQualidade de vida: insatisfeito")
        assert [e.question_number for e in ipss.entries] == [3]
        assert ipss.quality_of_life == "Qualidade de vida: insatisfeito"
        assert ipss.quality_of_life_score is None
        assert "question_1" in ipss.missing
        assert "quality_of_life" not in ipss.missing

    def test_unparseable_lines_ignored(self):
        ipss = extract_ipss("**IPSS**\nsem pontuação\n4- Urgência > 1")
        assert [e.question_number for e in ipss.entries] == [4]
