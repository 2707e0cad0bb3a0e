"""
Hospital 30-Day Readmission Risk Assessment
Command-line report over a file of patient records

Usage:
    python -m readmission_risk.main patients.json --seed 42 --jobs 4
"""

import argparse

from . import config
from .pipeline import (
    ReadmissionPredictor,
    assessments_to_frame,
    load_model_metrics,
    load_patients,
    summarize,
)


def print_banner(title):
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


def print_assessment(assessment):
    print(f"\nPatient {assessment.patient_id}")
    print(f"  Risk Score: {assessment.risk_score:.1%}")
    print(f"  Risk Level: {assessment.risk_category}")
    print(f"  Confidence: {assessment.confidence:.1%}")

    if assessment.contributing_factors:
        print("  Contributing Factors:")
        for factor in assessment.contributing_factors:
            print(f"    • {factor.factor} ({factor.importance:.2f}): {factor.description}")

    print("  Recommendations:")
    for recommendation in assessment.recommendations:
        print(f"    - {recommendation}")


def format_metric(value):
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:.3f}"
    return str(value)


def is_two_by_two(matrix):
    return (
        isinstance(matrix, (list, tuple))
        and len(matrix) == 2
        and all(isinstance(row, (list, tuple)) and len(row) == 2 for row in matrix)
        and all(isinstance(cell, int) and not isinstance(cell, bool) for row in matrix for cell in row)
    )


def print_metrics(metrics):
    print(f"\n  Accuracy:   {format_metric(metrics.accuracy)}")
    print(f"  Precision:  {format_metric(metrics.precision)}")
    print(f"  Recall:     {format_metric(metrics.recall)}")
    print(f"  F1-Score:   {format_metric(metrics.f1_score)}")
    print(f"  AUC-ROC:    {format_metric(metrics.auc_roc)}")
    print("\nConfusion Matrix:")

    # Metrics are passed through unvalidated; print anything unexpected as-is
    if not is_two_by_two(metrics.confusion_matrix):
        print(f"  {metrics.confusion_matrix}")
        return

    (tn, fp), (fn, tp) = metrics.confusion_matrix
    print(f"                    Predicted: No    Predicted: Yes")
    print(f"Actual: No          {tn:6d}           {fp:6d}")
    print(f"Actual: Yes         {fn:6d}           {tp:6d}")


def build_parser():
    parser = argparse.ArgumentParser(description="30-day readmission risk report")
    parser.add_argument("patients", help="JSON file with a list of patient records")
    parser.add_argument("--seed", type=int, default=config.RANDOM_SEED,
                        help="Random seed for reproducible scores")
    parser.add_argument("--jobs", type=int, default=config.N_JOBS,
                        help="Worker threads for batch scoring")
    parser.add_argument("--metrics", default=config.MODEL_METRICS_PATH,
                        help="JSON file with model metrics to display")
    parser.add_argument("--csv", help="Also write the assessment table to this CSV file")
    return parser


def main(argv=None):
    """
    Score every patient in the input file and print a census report.

    Returns:
        int: Exit status (1 if any record failed validation)
    """
    args = build_parser().parse_args(argv)
    config.configure_logging()

    print_banner("HOSPITAL READMISSION RISK ASSESSMENT\n30-Day Risk Report")

    patients = load_patients(args.patients)
    predictor = ReadmissionPredictor(random_state=args.seed, n_jobs=args.jobs)
    assessments, errors = predictor.predict_batch(patients)

    print_banner("PATIENT ASSESSMENTS")
    for assessment in assessments:
        print_assessment(assessment)

    if errors:
        print_banner("VALIDATION ERRORS")
        for error in errors:
            print(f"  Record {error['patient_index']} ({error['patient_id']}): {error['error']}")

    summary = summarize(assessments)
    print_banner("CENSUS SUMMARY")
    print(f"\n  Patients scored:    {summary['total']}")
    print(f"  High risk:          {summary['high']}")
    print(f"  Medium risk:        {summary['medium']}")
    print(f"  Low risk:           {summary['low']}")
    print(f"  Average risk score: {summary['average_risk_score']:.1%}")
    if summary['high_risk_patients']:
        print(f"  High-risk patients: {', '.join(summary['high_risk_patients'])}")

    if args.csv:
        assessments_to_frame(assessments).to_csv(args.csv, index=False)
        print(f"\n✓ Assessment table saved to {args.csv}")

    print_banner("MODEL PERFORMANCE")
    print_metrics(load_model_metrics(args.metrics))

    return 1 if errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
