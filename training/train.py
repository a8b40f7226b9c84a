import argparse
import json
import time
from pathlib import Path
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix, precision_recall_fscore_support, roc_auc_score, roc_curve
from sklearn.model_selection import StratifiedKFold
from typolink.config import settings
from typolink.ml.features import FEATURE_ORDER, FeatureExtractor, to_vector
from typolink.ml.model import save_bundle
from typolink.ml.prefilter import Prefilter
from typolink.ml.smo import SMOTrainer, TrainingConfig
from typolink.services.dictionaries import Dictionaries, load_dictionaries
from training.data import load_labelled_tokens, ns_records_from_flag, split_train_test

def build_dataset(df: pd.DataFrame, dictionaries: Dictionaries, prefiltered_only: bool=True):
    """Feature rows for every token the prefilter accepts (or every token when prefiltered_only is off)."""
    prefilter = Prefilter(dictionaries)
    extractor = FeatureExtractor(dictionaries)
    X = []
    y = []
    skipped = 0
    print('\nExtracting features from tokens...')
    for (idx, row) in df.iterrows():
        candidate = prefilter.check(row['token'])
        if prefiltered_only and (not candidate.is_candidate):
            skipped += 1
            continue
        feats = extractor.extract(candidate, row['text'], ns_records_from_flag(row['ns_absent']))
        X.append(to_vector(feats))
        y.append(int(row['label']))
    print(f'Extracted {len(X)} feature rows ({skipped} tokens rejected by the prefilter)')
    return (np.array(X, dtype=float).reshape(-1, len(FEATURE_ORDER)), np.array(y, dtype=int))

def evaluate_kernel(name: str, trainer: SMOTrainer, X, y, folds: int=5):
    print(f"\n{'=' * 60}")
    print(f'Evaluating: {name}')
    print(f"{'=' * 60}")
    start_time = time.time()
    n_splits = min(folds, int(np.bincount((y > 0).astype(int), minlength=2).min()))
    margins = np.zeros_like(y, dtype=float)
    if n_splits >= 2:
        skf = StratifiedKFold(n_splits=n_splits, shuffle=True, random_state=42)
        for (fold, (tr, te)) in enumerate(skf.split(X, y), 1):
            print(f'  Fold {fold}/{n_splits}...')
            (model, _) = trainer.fit(X[tr], y[tr])
            margins[te] = model.margins(X[te])
    else:
        print('  Not enough samples per class for cross-validation; scoring on the training set')
        (model, _) = trainer.fit(X, y)
        margins = model.margins(X)
    y_pred = np.where(margins > 0, 1, -1)
    auc = roc_auc_score(y, margins) if len(set(y)) > 1 else float('nan')
    (prec, rec, f1, _) = precision_recall_fscore_support(y, y_pred, average='binary', pos_label=1, zero_division=0)
    elapsed = time.time() - start_time
    print(f'\n  Results:')
    print(f'    AUC: {auc:.4f}')
    print(f'    Precision: {prec:.4f}')
    print(f'    Recall: {rec:.4f}')
    print(f'    F1-Score: {f1:.4f}')
    print(f'    Training time: {elapsed:.2f}s')
    return {'name': name, 'trainer': trainer, 'auc': auc, 'precision': prec, 'recall': rec, 'f1': f1, 'training_time': elapsed}

def main():
    parser = argparse.ArgumentParser(description='Train the typo-URL SVM with SMO.')
    parser.add_argument('--data', default='dataset/typo_urls.csv', help='CSV with token,text,label[,ns_absent]')
    parser.add_argument('--words', default=settings.WORDS_PATH)
    parser.add_argument('--tlds', default=settings.TLDS_PATH)
    parser.add_argument('--out', default='models/created_model.json', help='Where to write the JSON model')
    parser.add_argument('--C', type=float, default=1.0)
    parser.add_argument('--rbf-sigma', type=float, default=0.5)
    parser.add_argument('--seed', type=int, default=42)
    args = parser.parse_args()
    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    Path('reports').mkdir(exist_ok=True)
    print('=' * 60)
    print('Typo-URL Detection - Model Training')
    print('=' * 60)
    dictionaries = load_dictionaries(args.words, args.tlds)
    df = load_labelled_tokens(path=args.data, random_state=args.seed)
    (train_df, test_df) = split_train_test(df, test_size=0.2, random_state=args.seed)
    (X_train, y_train) = build_dataset(train_df, dictionaries)
    (X_test, y_test) = build_dataset(test_df, dictionaries)
    if len(X_train) == 0:
        raise SystemExit('No training rows survived the prefilter')
    config = TrainingConfig(C=args.C, seed=args.seed, memoize=len(X_train) <= 2000)
    trainers = [('Linear SVM', SMOTrainer(config, kernel='linear')), (f'RBF SVM (sigma={args.rbf_sigma})', SMOTrainer(config, kernel='rbf', rbf_sigma=args.rbf_sigma))]
    results = [evaluate_kernel(name, trainer, X_train, y_train) for (name, trainer) in trainers]
    best_result = max(results, key=lambda r: r['f1'])
    print(f"\nBest model: {best_result['name']} (F1={best_result['f1']:.4f})")
    print(f'\nTraining best model on full training set...')
    (best_model, stats) = best_result['trainer'].fit(X_train, y_train)
    print(f'  Passes: {stats.iterations}  Converged: {stats.converged}  Support vectors: {stats.n_support}')
    report = {'model_name': best_result['name'], 'kernel': best_model.kernel_type, 'training_samples': len(X_train), 'test_samples': len(X_test), 'cv': [{'name': r['name'], 'auc': float(r['auc']), 'f1': float(r['f1'])} for r in results]}
    if len(X_test):
        margins = best_model.margins(X_test)
        y_pred = np.where(margins > 0, 1, -1)
        (prec, rec, f1, _) = precision_recall_fscore_support(y_test, y_pred, average='binary', pos_label=1, zero_division=0)
        cm = confusion_matrix(y_test, y_pred, labels=[-1, 1])
        print(f'\nTest Set Results:')
        print(f'  Precision: {prec:.4f}')
        print(f'  Recall: {rec:.4f}')
        print(f'  F1-Score: {f1:.4f}')
        print(f'  TN: {cm[0, 0]:5d}  FP: {cm[0, 1]:5d}')
        print(f'  FN: {cm[1, 0]:5d}  TP: {cm[1, 1]:5d}')
        report.update({'test_precision': float(prec), 'test_recall': float(rec), 'test_f1': float(f1), 'confusion_matrix': cm.tolist()})
        if len(set(y_test)) > 1:
            (fpr, tpr, _) = roc_curve(y_test, margins)
            report['test_auc'] = float(roc_auc_score(y_test, margins))
            plt.figure(figsize=(10, 6))
            plt.plot(fpr, tpr, label=f"{best_result['name']} (AUC={report['test_auc']:.3f})", linewidth=2)
            plt.plot([0, 1], [0, 1], 'k--', label='Random')
            plt.xlabel('False Positive Rate')
            plt.ylabel('True Positive Rate')
            plt.title('ROC Curve - Test Set')
            plt.legend(loc='lower right')
            plt.grid(alpha=0.3)
            plt.savefig('reports/roc_curve.png', dpi=160, bbox_inches='tight')
            plt.close()
            print('Saved ROC curve to reports/roc_curve.png')
    best_model.save(out_path)
    save_bundle(best_model, out_path.with_suffix('.joblib'), model_name=best_result['name'], training_samples=len(X_train), converged=stats.converged)
    print(f'\nSaved model to {out_path} and {out_path.with_suffix(".joblib")}')
    Path('reports/metrics.json').write_text(json.dumps(report, indent=2))
    print('Saved metrics to reports/metrics.json')
if __name__ == '__main__':
    main()
