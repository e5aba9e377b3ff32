"""
Unit tests for cluster labeling (prompt, label cleaning, sampling, merge).
No API keys required.
"""

from types import SimpleNamespace

import httpx
import openai
import pandas as pd
import pytest

from postclusters.labeler import (
    ClusterLabeler,
    attach_labels,
    build_label_prompt,
    clean_label,
    label_clusters,
)
from postclusters.schema import ConfigurationError


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(**kwargs):
    return SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(**kwargs)))


class RecordingLabeler:
    def __init__(self):
        self.calls = []

    def label(self, texts, cluster_id):
        self.calls.append((cluster_id, list(texts)))
        return f"Topic {cluster_id}"


def test_build_label_prompt():
    prompt = build_label_prompt(["Tax cuts now", "Tariffs hurt farmers"], 7)
    assert "Cluster 7" in prompt
    assert "Tax cuts now\n\n---\n\nTariffs hurt farmers" in prompt
    assert prompt.rstrip().endswith("without quotes or explanation.")


def test_clean_label():
    assert clean_label('  "Corporate Tax News"  ') == "Corporate Tax News"
    assert clean_label("'Trade War Coverage'") == "Trade War Coverage"
    assert clean_label("Tariff Debate") == "Tariff Debate"
    assert clean_label("   ") is None
    assert clean_label(None) is None


def test_labeler_calls_chat_model_with_frozen_params():
    client = fake_client(content='"Tax Policy Advocacy"\n')
    labeler = ClusterLabeler(client=client)
    assert labeler.label(["post"], 1) == "Tax Policy Advocacy"

    call = client.chat.completions.calls[0]
    assert call["model"] == "gpt-4o"
    assert call["temperature"] == 0.7
    assert call["max_tokens"] == 50
    assert call["messages"][0]["role"] == "user"


def test_labeler_returns_none_on_api_error(capsys):
    error = openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))
    labeler = ClusterLabeler(client=fake_client(error=error))
    assert labeler.label(["post"], 4) is None
    assert "Warning: API error for cluster 4" in capsys.readouterr().out


def test_labeler_without_key_raises(monkeypatch, tmp_path):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        ClusterLabeler(env_path=str(tmp_path / "missing.env"))


def test_label_clusters_skips_noise_and_empty_clusters():
    df = pd.DataFrame({
        "cluster": [0, 1, 1, 2, 2, 3],
        "full_text": ["noise", "a", "b", "", None, "c"],
    })
    labeler = RecordingLabeler()
    sleeps = []
    labels = label_clusters(df, labeler, sleep=sleeps.append, verbose=False)

    assert labels["cluster"].tolist() == [1, 2, 3]
    assert labels["cluster_label"].isna().tolist() == [False, True, False]
    assert labels["cluster_label"].dropna().tolist() == ["Topic 1", "Topic 3"]
    assert labels["n_posts"].tolist() == [2, 0, 1]
    assert [c for c, _ in labeler.calls] == [1, 3]
    assert sorted(labeler.calls[0][1]) == ["a", "b"]
    # one pause between the two calls: base delay plus jitter under 1s
    assert len(sleeps) == 1
    assert 3.0 <= sleeps[0] < 4.0


def test_label_clusters_samples_at_most_n():
    df = pd.DataFrame({"cluster": [1] * 50, "full_text": [f"post {i}" for i in range(50)]})
    labeler = RecordingLabeler()
    label_clusters(df, labeler, samples_per_cluster=30, sleep=lambda s: None, verbose=False)
    texts = labeler.calls[0][1]
    assert len(texts) == 30
    assert len(set(texts)) == 30


def test_label_clusters_sampling_is_reproducible():
    df = pd.DataFrame({"cluster": [1] * 50, "full_text": [f"post {i}" for i in range(50)]})
    first, second = RecordingLabeler(), RecordingLabeler()
    label_clusters(df, first, samples_per_cluster=5, sleep=lambda s: None, verbose=False)
    label_clusters(df, second, samples_per_cluster=5, sleep=lambda s: None, verbose=False)
    assert first.calls == second.calls


def test_attach_labels():
    df = pd.DataFrame({"cluster": [1, 2, 1], "full_text": ["a", "b", "c"],
                       "embedding": [[0.1], [0.2], [0.3]]})
    labels = pd.DataFrame({"cluster": [1, 2], "cluster_label": ["Tax", "Trade"], "n_posts": [2, 1]})
    out = attach_labels(df, labels)

    assert "embedding" not in out.columns
    assert "n_posts" not in out.columns
    assert out["cluster_label"].tolist() == ["Tax", "Trade", "Tax"]
