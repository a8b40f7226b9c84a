import argparse
import json
from pathlib import Path
import numpy as np
from sklearn.metrics import classification_report, confusion_matrix
from typolink.config import settings
from typolink.ml.model import load_svm
from typolink.services.dictionaries import load_dictionaries
from training.data import load_labelled_tokens
from training.train import build_dataset

def main():
    parser = argparse.ArgumentParser(description='Evaluate a saved typo-URL model.')
    parser.add_argument('--data', default='dataset/typo_urls.csv')
    parser.add_argument('--model', default='models/created_model.json')
    parser.add_argument('--words', default=settings.WORDS_PATH)
    parser.add_argument('--tlds', default=settings.TLDS_PATH)
    args = parser.parse_args()
    print('=' * 60)
    print('Model Evaluation')
    print('=' * 60)
    if not Path(args.model).exists():
        print('\nError: No trained model found!')
        print('Please run: python -m training.train')
        return
    print('\nLoading model...')
    model = load_svm(args.model)
    print(f'  Kernel: {model.kernel_type}')
    print(f"  Support vectors: {model.n_support if not model.usew_ else 'n/a (linear weights)'}")
    dictionaries = load_dictionaries(args.words, args.tlds)
    df = load_labelled_tokens(path=args.data)
    (X, y) = build_dataset(df, dictionaries)
    print(f'\nEvaluating on {len(X)} samples...')
    y_pred = model.predict(X)
    print(f"\n{'=' * 60}")
    print('Results:')
    print(f"{'=' * 60}")
    print(classification_report(y, y_pred, labels=[-1, 1], target_names=['Link', 'Typo'], zero_division=0))
    cm = confusion_matrix(y, y_pred, labels=[-1, 1])
    print(f'  TN: {cm[0, 0]:5d}  FP: {cm[0, 1]:5d}')
    print(f'  FN: {cm[1, 0]:5d}  TP: {cm[1, 1]:5d}')
    Path('reports').mkdir(exist_ok=True)
    res = {'kernel': model.kernel_type, 'samples_evaluated': len(X), 'accuracy': float(np.mean(y_pred == y)) if len(X) else None, 'confusion_matrix': cm.tolist(), 'report': classification_report(y, y_pred, labels=[-1, 1], target_names=['Link', 'Typo'], output_dict=True, zero_division=0)}
    Path('reports/eval.json').write_text(json.dumps(res, indent=2))
    print(f'\nSaved results to reports/eval.json')
if __name__ == '__main__':
    main()
