"""CLI entrypoint for toporesolver."""

from __future__ import annotations

import argparse
import logging
import sys

from toporesolver.config import get_settings
from toporesolver.exceptions import ConfigurationError
from toporesolver.logging_config import setup_logging
from toporesolver.models import EvaluationSummary

logger = logging.getLogger(__name__)

RESOLVERS = ("random", "population", "docdist", "wmd", "prob")


def main(argv: list[str] | None = None) -> int:
    setup_logging()

    parser = argparse.ArgumentParser(prog="toporesolver")
    sub = parser.add_subparsers(dest="command", required=True)

    resolve_parser = sub.add_parser("resolve", help="select a candidate for every toponym")
    resolve_parser.add_argument("corpus", help="JSON corpus to resolve")
    resolve_parser.add_argument("-o", "--output", required=True)
    resolve_parser.add_argument("-r", "--resolver", choices=RESOLVERS, default="wmd")
    resolve_parser.add_argument("--gazetteer", help="JSON gazetteer for toponyms without candidates")
    resolve_parser.add_argument("--train-corpus", help="train on this corpus instead of the input")
    resolve_parser.add_argument("--log", help="document-geolocation log file")
    resolve_parser.add_argument("--models-dir", help="directory of per-type context models")
    resolve_parser.add_argument("--weights-in", help="initial WMD weights")
    resolve_parser.add_argument("--weights-out", help="write probabilistic scores as WMD weights")
    resolve_parser.add_argument("--iterations", type=int)
    resolve_parser.add_argument("--doc-coord", choices=["no", "addtopo", "weighted"], default="no")
    resolve_parser.add_argument("--pop-coef", type=float)
    resolve_parser.add_argument("--knn", type=int)
    resolve_parser.add_argument("--dg-only", action="store_true")
    resolve_parser.add_argument("--me-only", action="store_true")
    resolve_parser.add_argument("--seed", type=int)

    eval_parser = sub.add_parser("evaluate", help="score a resolved corpus against gold")
    eval_parser.add_argument("gold")
    eval_parser.add_argument("pred", nargs="?", help="resolved corpus; omit to score gold vs. selected in GOLD")
    eval_parser.add_argument("--oracle", action="store_true")
    eval_parser.add_argument("--errors", help="per-toponym error breakdown file")
    eval_parser.add_argument("--json", action="store_true", help="print a JSON summary")

    train_parser = sub.add_parser("train-context", help="train per-type context classifiers")
    train_parser.add_argument("models_dir")
    train_parser.add_argument("--corpus", help="gold corpus to extract training instances from")
    train_parser.add_argument("--window", type=int)

    args = parser.parse_args(argv)

    try:
        if args.command == "resolve":
            _resolve(args)
        elif args.command == "evaluate":
            _evaluate(args)
        elif args.command == "train-context":
            _train_context(args)
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return 2
    return 0


def _build_resolver(args: argparse.Namespace):
    from toporesolver.resolver.probabilistic import ProbabilisticResolver
    from toporesolver.resolver.simple import DocDistResolver, PopulationResolver, RandomResolver
    from toporesolver.resolver.wmd import DocumentCoord, WeightedMinDistResolver

    if args.resolver == "random":
        return RandomResolver(args.seed)
    if args.resolver == "population":
        return PopulationResolver(args.seed)
    if args.resolver == "docdist":
        if not args.log:
            raise ConfigurationError("the docdist resolver needs --log")
        return DocDistResolver(args.log, seed=args.seed)
    if args.resolver == "wmd":
        return WeightedMinDistResolver(
            num_iterations=args.iterations,
            weights_path=args.weights_in,
            log_path=args.log,
            doc_coord=DocumentCoord(args.doc_coord),
            seed=args.seed,
        )
    if not args.log or not args.models_dir:
        raise ConfigurationError("the prob resolver needs --log and --models-dir")
    return ProbabilisticResolver(
        args.log,
        args.models_dir,
        weights_out_path=args.weights_out,
        pop_component_coefficient=args.pop_coef,
        dg_prob_only=args.dg_only,
        me_prob_only=args.me_only,
        knn=args.knn,
        seed=args.seed,
    )


def _resolve(args: argparse.Namespace) -> None:
    from toporesolver.corpus_io import load_corpus, load_gazetteer, save_corpus

    gazetteer = load_gazetteer(args.gazetteer) if args.gazetteer else None
    resolver = _build_resolver(args)
    corpus = load_corpus(args.corpus, gazetteer)

    if args.train_corpus:
        resolver.train(load_corpus(args.train_corpus, gazetteer))
    else:
        resolver.train(corpus)
    resolver.disambiguate(corpus)

    save_corpus(corpus, args.output)
    unresolved = sum(1 for t in corpus.toponyms() if t.ambiguity > 0 and not t.has_selected)
    logger.info("Resolved corpus written to %s (%d toponyms unresolved)", args.output, unresolved)


def _evaluate(args: argparse.Namespace) -> None:
    from toporesolver.corpus_io import load_corpus
    from toporesolver.evaluation import AccuracyEvaluator, DistanceReport, SignatureEvaluator

    settings = get_settings().evaluation
    gold = load_corpus(args.gold)

    if args.pred is None:
        report = AccuracyEvaluator(gold).evaluate()
        dreport = DistanceReport()
    else:
        evaluator = SignatureEvaluator(
            gold,
            oracle=args.oracle,
            errors_path=args.errors or settings.errors_path,
        )
        report = evaluator.evaluate(load_corpus(args.pred))
        dreport = evaluator.distance_report

    threshold = settings.distance_threshold_km
    if args.json:
        summary = EvaluationSummary(
            precision=report.precision,
            recall=report.recall,
            f_score=report.f_score,
            accuracy=report.accuracy,
            min_error_km=dreport.min_distance,
            max_error_km=dreport.max_distance,
            mean_error_km=dreport.mean_distance,
            median_error_km=dreport.median_distance,
            fraction_within_threshold=dreport.fraction_within(threshold),
            threshold_km=threshold,
            toponyms_evaluated=dreport.num_distances,
        )
        print(summary.model_dump_json(indent=2))
        return

    if args.pred is None:
        print(f"\nA: {report.accuracy}")
        return
    print(f"\nP: {report.precision}")
    print(f"R: {report.recall}")
    print(f"F: {report.f_score}")
    print(f"\nMinimum error distance (km): {dreport.min_distance}")
    print(f"Maximum error distance (km): {dreport.max_distance}")
    print(f"\nMean error distance (km): {dreport.mean_distance}")
    print(f"Median error distance (km): {dreport.median_distance}")
    print(f"Fraction of distances within {threshold:g} km: {dreport.fraction_within(threshold)}")
    print(f"\nTotal toponyms evaluated: {dreport.num_distances}")


def _train_context(args: argparse.Namespace) -> None:
    from toporesolver.corpus_io import load_corpus
    from toporesolver.resolver.context import (
        load_stoplist,
        train_context_models,
        training_instances,
        write_training_instances,
    )

    settings = get_settings().resolver
    if args.corpus:
        window = args.window if args.window is not None else settings.context_window_size
        stoplist = load_stoplist(settings.stoplist_path)
        written = write_training_instances(
            args.models_dir, training_instances(load_corpus(args.corpus), window, stoplist)
        )
        logger.info("Wrote %d training instances for %d types", sum(written.values()), len(written))
    paths = train_context_models(args.models_dir)
    print(f"Trained {len(paths)} context models in {args.models_dir}")


if __name__ == "__main__":
    sys.exit(main())
