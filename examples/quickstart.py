#!/usr/bin/env python3
"""
moodtrack Quickstart Example

This example shows basic usage of the moodtrack package:
- Classifying free text by emotion keywords
- Recording camera and text observations in a file-backed log
- Computing dashboard statistics
- Exporting and restoring the log
"""

import shutil
import tempfile

from moodtrack import AggregationEngine, EventStore, FileBackend, IngestionCoordinator, scale_series
from moodtrack.aggregation import WEEKDAY_NAMES


def main():
    print("🙂 moodtrack Quickstart Example")
    print("=" * 40)

    workspace = tempfile.mkdtemp()
    print(f"💾 Using data directory: {workspace}")

    # No suggestion client: nothing here talks to the network
    store = EventStore(FileBackend(workspace))
    coord = IngestionCoordinator(store)

    print("\n📝 Classifying text...")
    journal = [
        "I'm feeling absolutely wonderful today! Everything is going perfectly.",
        "I'm really stressed about this upcoming deadline and feeling overwhelmed.",
        "I'm quite worried about the presentation tomorrow.",
        "Today was just an ordinary day, nothing special happened.",
    ]
    for text in journal:
        result, obs = coord.ingest_text(text)
        print(f"  '{text[:50]}...'")
        print(f"    → {result.emotion} ({result.confidence}%)")

    print("\n📷 Recording camera observations...")
    coord.ingest_expressions({"happy": 0.88, "neutral": 0.09, "surprised": 0.03})
    coord.ingest_expressions({"sad": 0.41, "neutral": 0.55, "fearful": 0.04})
    coord.ingest("happy", 76, "camera")

    stats = AggregationEngine.compute(store.all())
    print(f"\n📊 Dashboard:")
    print(f"   Total detections: {stats.total_detections}")
    print(f"   Today: {stats.today_detections}")
    print(f"   Dominant emotion: {stats.dominant_emotion}")
    print(f"   Average confidence: {stats.average_confidence}%")
    print(f"   Distribution:")
    for emotion, share in stats.emotion_distribution.items():
        if share.count:
            print(f"     {emotion:<10} {share.count:>3}  {share.percentage:>3}%")

    bars = scale_series(stats.weekly_trend)
    print(f"   Weekly trend:")
    for name, count, bar in zip(WEEKDAY_NAMES, stats.weekly_trend, bars):
        print(f"     {name[:3]} {'#' * (bar // 10):<10} {count}")

    text_only = AggregationEngine.filter(store.all(), source="text")
    print(f"\n🔍 Text observations only: {len(text_only)}")

    print(f"\n🗄️ Export, clear and restore:")
    exported = store.export()
    store.clear()
    print(f"   After clear: {len(store)} observations")
    restored = store.restore(exported)
    print(f"   Restored {restored} observations")

    coord.shutdown()
    print(f"\n🧹 Cleaning up temporary files...")
    shutil.rmtree(workspace, ignore_errors=True)


if __name__ == "__main__":
    main()
