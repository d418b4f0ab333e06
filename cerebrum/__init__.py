"""
Cerebrum: offline content pipeline for a voice-driven trivia game.

The pipeline has two halves:

- data: turns raw tab-separated clue exports into validated, self-contained
  category files plus an index, and selects fixed boards for test games
- audio: pre-generates spoken audio (host phrases, test game clues) through
  a text-to-speech endpoint with one request in flight at a time, skipping
  files that already exist so interrupted runs can be resumed

Supporting packages: phrases (host phrase catalog), synthesis (HTTP speech
client) and utils (configuration and text helpers).
"""

__version__ = "0.1.0"
