"""
실행 중인 서버에 사진을 올리고 결과가 나올 때까지 기다린다.

사용법:
    cd src && uv run python -m scripts.repaint room.jpg --color "#BCB88A" -o out.png
    cd src && uv run python -m scripts.repaint room.jpg --prompt "paint the walls navy" --mask mask.png
"""

import argparse
import mimetypes
import os
import sys

import httpx

from utility.poller import DEFAULT_INTERVAL, PollingTimeout, fetch_image, wait_for_terminal_status


def _file_part(path: str) -> tuple[str, bytes, str]:
    content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    with open(path, "rb") as f:
        return (os.path.basename(path), f.read(), content_type)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Repaint the walls of a room photo")
    parser.add_argument("image")
    parser.add_argument("--color", help="#RRGGBB paint color")
    parser.add_argument("--prompt", help="free-form prompt (appended when --color is given)")
    parser.add_argument("--mask")
    parser.add_argument("-o", "--output", default="repainted.png")
    parser.add_argument("--server", default="http://localhost:8000")
    parser.add_argument("--interval", type=float, default=DEFAULT_INTERVAL)
    parser.add_argument("--timeout", type=float, default=300.0)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    files = {"image": _file_part(args.image)}
    if args.mask:
        files["mask"] = _file_part(args.mask)
    data = {k: v for k, v in {"colorHex": args.color, "prompt": args.prompt}.items() if v}

    with httpx.Client(base_url=args.server, timeout=60.0) as http:
        resp = http.post("/", data=data, files=files)
        if resp.is_error:
            print(f"Upload failed ({resp.status_code}): {resp.json().get('error')}")
            return 1

        image_id = resp.json()["response"]["imageId"]
        print(f"Image ID: {image_id}")

        try:
            status = wait_for_terminal_status(
                http, image_id, interval=args.interval, timeout=args.timeout
            )
        except PollingTimeout as e:
            print(str(e))
            return 1

        if status["status"] == "error":
            print(f"Generation failed ({status.get('errorKind')}): {status['errorMessage']}")
            return 1

        content, content_type = fetch_image(http, image_id)

    with open(args.output, "wb") as f:
        f.write(content)
    print(f"Saved {len(content)} bytes ({content_type}) → {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
