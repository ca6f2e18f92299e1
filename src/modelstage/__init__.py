"""modelstage: build-time code generation and artifact staging for ONNX models."""

__version__ = "0.1.0"
