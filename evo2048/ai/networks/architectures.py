"""
Preset network architectures.

Architecture Format:
    {
        "name": "evo2048",
        "input_size": 16,
        "output_size": 4,
        "layers": [
            {"id": "input", "type": "input", "size": 16},
            {"id": "hidden_0", "type": "hidden", "size": 8},
            {"id": "output", "type": "output", "size": 4}
        ]
    }
"""
from typing import Any, Dict, List

# One output node per shift direction
OUTPUT_SIZE = 4


def create_architecture(
    input_size: int = 16,
    hidden_layers: int = 1,
    hidden_size: int = 8,
    output_size: int = OUTPUT_SIZE,
) -> Dict[str, Any]:
    """
    Build an architecture with uniform hidden layers.

    Architecture:
        Input (cells) -> [Hidden (hidden_size)] x hidden_layers -> Output (4)

    Args:
        input_size: Number of board cells.
        hidden_layers: Number of hidden layers (may be 0).
        hidden_size: Nodes per hidden layer.
        output_size: Output nodes; must be 4.

    Returns:
        JSON architecture specification.

    Raises:
        ValueError: If any size is invalid.
    """
    if input_size <= 0:
        raise ValueError("input_size must be positive")
    if hidden_layers < 0:
        raise ValueError("hidden_layers must be non-negative")
    if hidden_layers and hidden_size <= 0:
        raise ValueError("hidden_size must be positive")
    if output_size != OUTPUT_SIZE:
        raise ValueError(f"output_size must be {OUTPUT_SIZE}, one per direction")

    layers: List[Dict[str, Any]] = [
        {'id': 'input', 'type': 'input', 'size': input_size},
    ]
    for i in range(hidden_layers):
        layers.append({'id': f'hidden_{i}', 'type': 'hidden', 'size': hidden_size})
    layers.append({'id': 'output', 'type': 'output', 'size': output_size})

    return {
        'name': 'evo2048',
        'input_size': input_size,
        'output_size': output_size,
        'layers': layers,
    }


def default_architecture(board_size: int = 4) -> Dict[str, Any]:
    """One hidden layer of 8 nodes over a board_size x board_size board."""
    return create_architecture(input_size=board_size * board_size)
