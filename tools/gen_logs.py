import argparse
import random
from pathlib import Path
from typing import List, Optional

LEVELS = ["ERROR", "WARN", "FIXME", "INFO", "DEBUG", "LOG", "TRACE"]
CATEGORIES = [
    ("videodecoder", "gstvideodecoder.c", "gst_video_decoder_finish_frame", "dec0"),
    ("GST_PADS", "gstpad.c", "gst_pad_push_data", "queue0:src"),
    ("basesrc", "gstbasesrc.c", "gst_base_src_loop", "filesrc0"),
    ("GST_STATES", "gstelement.c", "gst_element_change_state", "pipeline0"),
    ("GST_BUS", "gstbus.c", "gst_bus_post", None),
]
THREADS = ["0x55d5c3a1b6e0", "0x7f3a2c001b70", "0x7f3a2c002d10"]
PIDS = [1234, 1235]

MESSAGES = [
    "pushing buffer of size 4096",
    "finish frame {n}",
    "state change   READY -> PAUSED",
    "caps: video/x-raw, format=(string)I420, width=(int)1920",
    "dropping frame due to QoS",
]

# color output as produced by GST_DEBUG_COLOR_MODE=on
ANSI_LEVEL = "\x1b[32;01m{}\x1b[00m"


def format_ts(ns: int) -> str:
    seconds, frac = divmod(ns, 1_000_000_000)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours}:{minutes:02d}:{seconds:02d}.{frac:09d}"


def generate(count: int = 200, seed: Optional[int] = None, garbage_every: int = 0, color: bool = False) -> List[str]:
    """Return `count` debug lines, plus a non-conforming line every `garbage_every` lines."""
    rnd = random.Random(seed)
    ts = 0
    lines = []
    for i in range(count):
        ts += rnd.randint(10_000, 5_000_000)
        level = rnd.choice(LEVELS)
        category, file, function, obj = rnd.choice(CATEGORIES)
        location = f"{file}:{rnd.randint(1, 4000)}:{function}:" + (f"<{obj}>" if obj else "")
        level_col = ANSI_LEVEL.format(level) if color else level
        lines.append(
            f"{format_ts(ts)} {rnd.choice(PIDS):>6} {rnd.choice(THREADS)} {level_col:<7} "
            f"{category:>20} {location} {rnd.choice(MESSAGES).format(n=i)}"
        )
        if garbage_every and (i + 1) % garbage_every == 0:
            lines.append("** (gst-launch-1.0:1234): CRITICAL **: partial write")
    return lines


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Generate a synthetic GStreamer debug log")
    ap.add_argument("-n", "--count", type=int, default=200)
    ap.add_argument("-o", "--out", default="synthetic_gst_debug.log")
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--garbage-every", type=int, default=0)
    ap.add_argument("--color", action="store_true")
    args = ap.parse_args(argv)

    lines = generate(args.count, args.seed, args.garbage_every, args.color)
    out = Path(args.out)
    out.write_text("\n".join(lines) + "\n")
    print(f"✅ Generated {len(lines)} log lines -> {out.resolve()}")


if __name__ == "__main__":
    main()
