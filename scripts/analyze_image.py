"""
CLI to check one image for required EPIs -> JSON.
"""
from __future__ import annotations
import argparse, json, logging, os
from epi_core.config import Settings
from epi_core.errors import EPIError
from epi_core.pipeline import analyze_image_pipeline

def main():
    p = argparse.ArgumentParser()
    p.add_argument("--image", required=True, help="Path to input image")
    p.add_argument("--out", default="output/evaluation.json", help="Path to output JSON")
    p.add_argument("--annotated", default=None, help="Optional path for the annotated image")
    p.add_argument("--mock", action="store_true", help="Use simulated detections (test mode)")
    p.add_argument("--mock-on-error", action="store_true", help="Fall back to simulated detections if the relay fails")
    args = p.parse_args()

    settings = Settings()
    logging.basicConfig(level=settings.LOG_LEVEL)
    try:
        result = analyze_image_pipeline(args.image, settings, use_mock=args.mock,
                                        mock_on_error=args.mock_on_error,
                                        annotated_path=args.annotated)
    except EPIError as e:
        raise SystemExit(f"Erro ao processar imagem: {e}")
    print(json.dumps(result, indent=2, ensure_ascii=False))

    os.makedirs(os.path.dirname(args.out) or ".", exist_ok=True)
    with open(args.out, "w", encoding="utf-8") as f:
        json.dump(result, f, indent=2, ensure_ascii=False)
    print(f"✅ Evaluation written to {args.out}")

if __name__ == "__main__":
    main()
