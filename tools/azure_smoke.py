# tools/azure_smoke.py
from __future__ import annotations
from openai import NotFoundError
from intake_core.azure_cfg import client, settings
from intake_core.config import load_config
from intake_core.intake_steps import load_steps
from intake_core.llm_bridge import LLMTextScorer
from intake_core.types import StepKind

def main():
    cfg = load_config()
    s = settings(cfg)
    print("Endpoint :", s.endpoint)
    print("Deploy   :", s.deployment, "(deployment name passed as model=)")
    print("API ver  :", s.api_version)
    cli = client(cfg)
    try:
        r = cli.chat.completions.create(
            model=s.deployment,                       # deployment name, not model family
            messages=[{"role":"user","content":"Say 'pong' only."}],
            temperature=0.0,
            max_tokens=5,
        )
        print("Reply    :", r.choices[0].message.content)
    except NotFoundError:
        print("ERROR 404: Azure cannot find this deployment for this API version.")
        print("→ Verify the deployment name EXACTLY as in the portal.")
        print("→ Ensure api_version matches the portal's 'Target URI'.")
        raise

    step = load_steps().by_kind(StepKind.SHORT_TEXT)[0]
    ts = LLMTextScorer(cfg).score_short_text(
        step, "A callback is a function passed to another function and called later, e.g. when an async request finishes.")
    print(f"Grade    : {ts.score:.2f} via {ts.details.get('grader')} - {ts.feedback}")

if __name__ == "__main__":
    main()
