from typing import Optional, Tuple
import pandas as pd
from sklearn.model_selection import train_test_split
LABEL_MAP = {'typo': 1, 'typo_url': 1, '1': 1, '+1': 1, 'link': -1, 'url': -1, 'legit': -1, 'not_typo': -1, '-1': -1, '0': -1}

def load_labelled_tokens(path: str='dataset/typo_urls.csv', sample_size: Optional[int]=None, random_state: int=42) -> pd.DataFrame:
    """
    Columns: token, text, label and optionally ns_absent.

    ``label`` may be +1/-1, 1/0 or typo/link. ``ns_absent`` records whether the
    token had no NS records when the sample was collected (1) or did (0); rows
    without it are treated as unknown and get ns=0.
    """
    print(f'Loading dataset from {path}...')
    df = pd.read_csv(path, dtype={'token': str, 'text': str})
    missing = {'token', 'text', 'label'} - set(df.columns)
    if missing:
        raise ValueError(f'CSV is missing columns: {sorted(missing)}')
    df['label'] = df['label'].astype(str).str.strip().str.lower().map(LABEL_MAP)
    df = df[df['label'].isin([1, -1])].copy()
    df['label'] = df['label'].astype(int)
    df['text'] = df['text'].fillna('')
    if 'ns_absent' not in df.columns:
        df['ns_absent'] = pd.NA
    print(f'Total samples: {len(df)}')
    print(f"Label distribution:\n{df['label'].value_counts()}")
    if sample_size and sample_size < len(df):
        df = df.groupby('label', group_keys=False).apply(lambda x: x.sample(n=min(len(x), sample_size // 2), random_state=random_state)).reset_index(drop=True)
        print(f'\nSampled to {len(df)} samples')
    df = df.sample(frac=1, random_state=random_state).reset_index(drop=True)
    return df

def split_train_test(df: pd.DataFrame, test_size: float=0.2, random_state: int=42) -> Tuple[pd.DataFrame, pd.DataFrame]:
    stratify = df['label'] if df['label'].value_counts().min() >= 2 else None
    (train_df, test_df) = train_test_split(df, test_size=test_size, random_state=random_state, stratify=stratify)
    print(f'\nTrain set: {len(train_df)} samples')
    print(f'Test set: {len(test_df)} samples')
    return (train_df.reset_index(drop=True), test_df.reset_index(drop=True))

def ns_records_from_flag(value) -> Optional[list]:
    """Turn a recorded ns_absent flag back into what a lookup would have returned."""
    if value is None or pd.isna(value):
        return None
    return [] if int(value) == 1 else ['recorded.']

