import argparse
import json
import logging
import os
import sys

from login_pattern_agent.agent.analyzer import AnalysisOptions, run_analysis_blocking


def main():
    parser = argparse.ArgumentParser(description="Infer reusable login selector patterns for a page")
    parser.add_argument("--url", help="Login page URL to analyze")
    parser.add_argument("--profile-base", default=None, help="Directory holding browser profiles")
    parser.add_argument("--page-id", default="default", help="Profile name under --profile-base")
    parser.add_argument("--chrome-path", default=None, help="Chrome/Chromium executable to launch")
    parser.add_argument("--save-path-json", default=None)
    parser.add_argument("--save-path-yaml", default=None)
    parser.add_argument("--wait-after-click-ms", type=int, default=None)
    parser.add_argument("--verbose", action="store_true", help="Log prompts, proposals and fallbacks")
    args = parser.parse_args()

    if not args.url:
        print("Missing --url argument", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    options = AnalysisOptions.from_settings(
        save_path_json=args.save_path_json,
        save_path_yaml=args.save_path_yaml,
        wait_after_click_ms=args.wait_after_click_ms,
        prompt_verbose=args.verbose or None,
    )
    record = run_analysis_blocking(
        args.url,
        options,
        page_id=args.page_id,
        profile_base=args.profile_base,
        chrome_path=args.chrome_path,
    )

    print("Analysis result:")
    print(json.dumps(record, indent=2))
    print(f"Saved to JSON: {os.path.abspath(options.save_path_json)}")
    print(f"Saved to YAML: {os.path.abspath(options.save_path_yaml)}")


if __name__ == "__main__":
    main()
