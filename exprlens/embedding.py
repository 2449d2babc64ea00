"""t-SNE embedding of samples and assembly of the faceted plotting table."""

from __future__ import annotations

import logging
from typing import Mapping

import anndata as ad
import numpy as np
import pandas as pd
from sklearn.manifold import TSNE

from exprlens.config import DesignColumns
from exprlens.io import GENE_COL
from exprlens.variance import VARIANCE_COL

TSNE_KEY = "X_tsne"
TYPE_COL = "type"
COORD_COLS = ("tSNE1", "tSNE2")


def resolve_perplexity(n_samples: int, target: float = 30.0) -> float:
    """Cap the perplexity at ``(n_samples - 1) / 3`` when that is smaller."""
    n = int(n_samples)
    if n < 2:
        raise ValueError(f"t-SNE needs at least 2 samples, got {n}.")
    return float(min(float(target), (n - 1) / 3.0))


def build_sample_anndata(matrix: pd.DataFrame, gene_col: str = GENE_COL) -> ad.AnnData:
    """Samples as observations, every gene as a variable."""
    values = matrix.drop(columns=[c for c in (VARIANCE_COL,) if c in matrix.columns])
    values = values.set_index(gene_col)
    X = values.to_numpy(dtype=float).T
    obs = pd.DataFrame(index=pd.Index([str(c) for c in values.columns], name="sample"))
    var = pd.DataFrame(index=pd.Index(values.index.astype(str), name=gene_col))
    return ad.AnnData(X=X, obs=obs, var=var)


def run_tsne(
    adata: ad.AnnData,
    *,
    perplexity: float = 30.0,
    max_iter: int = 1000,
    seed: int = 0,
    logger: logging.Logger | None = None,
) -> np.ndarray:
    """Exact 2-D t-SNE over ``adata.X``; stores the result in ``obsm['X_tsne']``.

    Duplicate observations are kept.
    """
    perp = resolve_perplexity(adata.n_obs, perplexity)
    if logger is not None:
        logger.info(
            "t-SNE: n_samples=%d n_genes=%d perplexity=%.4g max_iter=%d",
            adata.n_obs,
            adata.n_vars,
            perp,
            max_iter,
        )
    model = TSNE(
        n_components=2,
        perplexity=perp,
        max_iter=int(max_iter),
        method="exact",
        random_state=int(seed),
    )
    coords = model.fit_transform(np.asarray(adata.X, dtype=float))
    adata.obsm[TSNE_KEY] = coords
    adata.uns["tsne"] = {"perplexity": perp, "max_iter": int(max_iter), "seed": int(seed)}
    return coords


def combine_embeddings(
    embeddings: Mapping[str, ad.AnnData],
    design: pd.DataFrame,
    columns: DesignColumns,
) -> pd.DataFrame:
    """Stack per-matrix coordinates with a ``type`` label and join design fields.

    The join is positional, so every embedding must have exactly one row per
    design row.
    """
    meta_cols = [columns.tissue, columns.instrument, columns.series]
    missing = [c for c in meta_cols if c not in design.columns]
    if missing:
        raise KeyError(f"Design table missing column(s) for plotting: {', '.join(missing)}")

    n_design = int(design.shape[0])
    meta = design[meta_cols].reset_index(drop=True)
    frames = []
    for label, adata in embeddings.items():
        if TSNE_KEY not in adata.obsm:
            raise KeyError(f"Embedding '{label}' has no obsm['{TSNE_KEY}']; run run_tsne first.")
        coords = np.asarray(adata.obsm[TSNE_KEY])
        if coords.shape[0] != n_design:
            raise ValueError(
                f"Embedding '{label}' has {coords.shape[0]} rows but the design table "
                f"has {n_design}; cannot join sample metadata."
            )
        frame = pd.DataFrame(coords[:, :2], columns=list(COORD_COLS))
        frame.insert(0, "sample", adata.obs_names.to_list())
        frame[TYPE_COL] = label
        frames.append(pd.concat([frame, meta], axis=1))
    return pd.concat(frames, ignore_index=True)
