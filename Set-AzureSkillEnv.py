# Set_AzureSkillEnv.py
import os, json, argparse, subprocess, sys

_REQUIRED = ("AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_API_KEY", "AZURE_OPENAI_DEPLOYMENT")
_SHOWN = ("AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_DEPLOYMENT", "AZURE_OPENAI_API_VERSION",
          "USE_LLM_GRADING", "CODE_RUNNER_URL", "JDOODLE_CLIENT_ID")

def load_cfg(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        cfg = json.load(f)
    for k in _REQUIRED:
        if not cfg.get(k):
            print(f"Missing {k} in {path}", file=sys.stderr); sys.exit(1)
    cfg.setdefault("AZURE_OPENAI_API_VERSION", "2024-08-01-preview")
    cfg.setdefault("USE_LLM_GRADING", "1")
    return {k: str(v) for k, v in cfg.items()}

def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--config", default=".azure_config.json")
    ap.add_argument("--run", nargs=argparse.REMAINDER,
                    help="Optional command to run with env set. Example: --run python autoplay.py --profile all --llm")
    args = ap.parse_args()

    cfg = load_cfg(args.config)
    env = os.environ.copy(); env.update(cfg)

    if not args.run:
        print("Loaded grading config:")
        for k in _SHOWN:
            print(f"{k}={env.get(k, '')}")
        print("Note: Python cannot persist env to parent shell. Export these yourself or use --run.")
        return

    print("Launching:", " ".join(args.run))
    subprocess.run(args.run, env=env, check=True)

if __name__ == "__main__":
    main()
