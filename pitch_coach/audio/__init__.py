"""Audio capture, file playback and reference tones."""
