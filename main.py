"""
beatsync - Main Entry Point

Example usage:
    python main.py path/to/track.wav
    python main.py --config config/config.yaml --output structure.json path/to/track.wav
"""

from beatsync.cli import main

if __name__ == "__main__":
    main()
