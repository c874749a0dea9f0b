"""Survey segment classification with a single-hidden-layer neural network."""
