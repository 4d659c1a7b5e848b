from unittest.mock import MagicMock, patch

import numpy as np
import pandas as pd

from where2.embeddings.encoder import encode_text
from where2.embeddings.precompute import build_text, run_precompute


def test_build_text_describes_venue():
    row = pd.Series({
        "name": "Marina Sunset Cafe",
        "highlights": "Sunset views over the marina",
        "tags": "outdoor,waterfront",
        "cuisine": "Cafe,Breakfast",
        "area": "Marina",
        "noise": "Moderate",
    })

    assert build_text(row) == (
        "Marina Sunset Cafe. Sunset views over the marina. Tags: outdoor,waterfront. "
        "Cuisine: Cafe,Breakfast. Area: Marina. Atmosphere: Moderate"
    )


def test_build_text_skips_missing_fields():
    row = pd.Series({
        "name": "Dubai Aquarium",
        "highlights": float("nan"),
        "tags": "indoor",
        "cuisine": float("nan"),
        "area": "Downtown",
        "noise": float("nan"),
    })

    assert build_text(row) == "Dubai Aquarium. Tags: indoor. Area: Downtown"


@patch("where2.embeddings.encoder._get_model")
def test_encode_text_uses_shared_model(mock_get_model):
    model = MagicMock()
    model.encode.return_value = np.ones(384)
    mock_get_model.return_value = model

    vec = encode_text("quiet cafe")

    assert vec.shape == (384,)
    model.encode.assert_called_once_with("quiet cafe", show_progress_bar=False)


@patch("where2.embeddings.precompute.np.save")
@patch("where2.embeddings.precompute.encode_batch")
def test_run_precompute_keeps_csv_order(mock_encode_batch, mock_save):
    mock_encode_batch.side_effect = lambda texts: np.zeros((len(texts), 384))

    run_precompute()

    texts = mock_encode_batch.call_args.args[0]
    assert texts[0].startswith("Marina Sunset Cafe")
    assert len(texts) == 18
    saved = mock_save.call_args.args[1]
    assert saved.shape == (18, 384)
