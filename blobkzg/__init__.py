"""blobkzg - batch KZG point-evaluation verification with a tunable stress workload."""

__version__ = "0.1.0"
