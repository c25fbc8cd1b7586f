"""Unit tests for result export and summary."""

from sentiment_wizard.export import export_results, quote_field, render_results_csv, summarize
from sentiment_wizard.models.analysis_models import AnalysisResult
from sentiment_wizard.models.enums import Sentiment


def make_results():
    return [
        AnalysisResult(index=0, text="Great, really", sentiment=Sentiment.POSITIVE),
        AnalysisResult(index=1, text='He said "meh"', sentiment=Sentiment.MIXED),
        AnalysisResult(index=2, text="Broken", sentiment=Sentiment.NEGATIVE),
    ]


def test_quote_field():
    assert quote_field("plain") == '"plain"'
    assert quote_field('a "b" c') == '"a ""b"" c"'


def test_render_csv():
    assert render_results_csv(make_results()) == (
        "Comment,Sentiment\n"
        '"Great, really",positive\n'
        '"He said ""meh""",mixed\n'
        '"Broken",negative\n'
    )


def test_render_empty():
    assert render_results_csv([]) == "Comment,Sentiment\n"


def test_export_writes_utf8(tmp_path):
    results = [AnalysisResult(index=0, text="Très bien", sentiment=Sentiment.POSITIVE)]
    
    path = export_results(results, tmp_path / "out.csv")
    
    assert path.read_bytes() == 'Comment,Sentiment\n"Très bien",positive\n'.encode("utf-8")


def test_summary_counts():
    summary = summarize(make_results())
    
    assert summary.total == 3
    assert summary.count(Sentiment.POSITIVE) == 1
    assert summary.count(Sentiment.NEUTRAL) == 0
    assert summary.percentage(Sentiment.NEGATIVE) == 1 / 3
    assert summarize([]).percentage(Sentiment.POSITIVE) == 0.0
