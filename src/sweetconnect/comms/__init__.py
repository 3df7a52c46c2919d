"""Communication layer: messages, storage and live delivery."""
