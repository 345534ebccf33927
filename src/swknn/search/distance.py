from __future__ import annotations

import torch

from ..errors import SearchFault


def as_query(x, num_attributes: int) -> torch.Tensor:
    """Validate a query vector and return it as a float64 tensor."""
    try:
        q = torch.as_tensor(x, dtype=torch.float64)
    except (TypeError, ValueError, RuntimeError) as e:
        raise SearchFault(f"query is not numeric: {e}") from e
    if q.ndim != 1 or q.shape[0] != num_attributes:
        raise SearchFault(f"query has shape {tuple(q.shape)}, expected ({num_attributes},)")
    q = torch.where(torch.isnan(q), torch.zeros_like(q), q)
    if not torch.isfinite(q).all():
        raise SearchFault("query contains infinite values")
    return q


def euclidean(query: torch.Tensor, points: torch.Tensor) -> torch.Tensor:
    """Row-wise Euclidean distance from query (D,) to points (N, D)."""
    if points.shape[0] == 0:
        return torch.zeros(0, dtype=torch.float64)
    diff = points - query.unsqueeze(0)
    return (diff * diff).sum(dim=1).sqrt()
