#!/usr/bin/env python3
"""
Convert a TCPD-style results CSV into elections-<year>.json and constituencies.json.
"""

import argparse
import json
from pathlib import Path

import pandas as pd


def to_int(value, default=0):
    try:
        if pd.isna(value):
            return default
        return int(float(value))
    except (TypeError, ValueError):
        return default


def to_float(value, default=0.0):
    try:
        if pd.isna(value):
            return default
        return float(value)
    except (TypeError, ValueError):
        return default


def to_str(value):
    if value is None or pd.isna(value):
        return ''
    return str(value).strip()


def parse_candidate(row):
    """One candidate entry from a CSV row."""
    is_nota = row.get('Candidate') == 'None Of The Above' or row.get('Party') == 'NOTA'
    candidate = {
        'name': to_str(row.get('Candidate')),
        'party': to_str(row.get('Party')),
        'votes': to_int(row.get('Votes')),
        'vote_share': to_float(row.get('Vote_Share_Percentage')),
        'winner': to_int(row.get('Position')) == 1 and not is_nota,
        'incumbent': to_str(row.get('Incumbent')).upper() == 'TRUE',
        'deposit_lost': to_str(row.get('Deposit_Lost')).lower() == 'yes',
        'sex': to_str(row.get('Sex')),
        'age': to_int(row.get('Age'), None) or None,
        'education': to_str(row.get('MyNeta_education')),
        'profession': to_str(row.get('TCPD_Prof_Main_Desc')),
        'profession_secondary': to_str(row.get('TCPD_Prof_Second_Desc')),
    }

    if to_str(row.get('Margin')) and not is_nota:
        candidate['margin'] = to_int(row.get('Margin'))
        candidate['margin_percent'] = to_float(row.get('Margin_Percentage'))

    terms = to_int(row.get('No_Terms'))
    if terms:
        candidate['terms'] = terms

    if to_str(row.get('Turncoat')).upper() == 'TRUE':
        candidate['turncoat'] = True

    return candidate


def convert(df, year):
    """Return (elections, constituency_meta) dicts for a results DataFrame."""
    elections = {'year': year, 'alliances': {}, 'constituencies': {}}
    meta = {}

    # Rows without a constituency number cannot be placed
    numbers = df['Constituency_No'].map(to_int)
    skipped = int((numbers == 0).sum())
    df = df.assign(_const_no=numbers, _position=df['Position'].map(lambda p: to_int(p, 9999)))
    df = df[df['_const_no'] > 0]
    if skipped:
        print(f"Warning: skipped {skipped} rows without a constituency number")

    for const_no, group in df.groupby('_const_no', sort=True):
        group = group.sort_values('_position', kind='stable')
        rows = group.to_dict('records')
        first = rows[0]
        key = str(const_no)

        elections['constituencies'][key] = {
            'name': to_str(first.get('Constituency_Name')),
            'district': to_str(first.get('District_Name')),
            'type': to_str(first.get('Constituency_Type')) or 'GEN',
            'total_votes': to_int(first.get('Valid_Votes')),
            'electors': to_int(first.get('Electors')),
            'turnout_percent': to_float(first.get('Turnout_Percentage')),
            'num_candidates': to_int(first.get('N_Cand')) or len(rows),
            'candidates': [parse_candidate(row) for row in rows],
        }

        meta[key] = {
            'name': to_str(first.get('Constituency_Name')),
            'district': to_str(first.get('District_Name')),
            'type': to_str(first.get('Constituency_Type')) or 'GEN',
            'electors': {str(year): to_int(first.get('Electors'))},
            'sub_region': to_str(first.get('Sub_Region')),
        }

    return elections, meta


def merge_meta(existing, new, year):
    """Fold one year's metadata into an existing constituencies.json mapping."""
    merged = dict(existing)
    for key, entry in new.items():
        if key not in merged:
            merged[key] = entry
            continue
        current = dict(merged[key])
        electors = current.get('electors')
        if electors in (None, ''):
            electors = {}
        elif not isinstance(electors, dict):
            # a bare count has no year to file it under
            print(f"Warning: keeping unlabelled electors for constituency {key}; {year} count not merged")
            continue
        electors = dict(electors)
        electors.update(entry['electors'])
        current['electors'] = electors
        merged[key] = current
    return merged


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('csv', type=Path, help='Results CSV')
    parser.add_argument('--year', type=int, required=True)
    parser.add_argument('--out-dir', type=Path, default=Path('data'))
    args = parser.parse_args(argv)

    print(f"Reading {args.csv}...")
    df = pd.read_csv(args.csv, dtype=str, keep_default_na=False, na_values=[''])
    print(f"Parsed {len(df)} candidate rows")

    elections, meta = convert(df, args.year)
    print(f"Processed {len(elections['constituencies'])} constituencies")

    args.out_dir.mkdir(parents=True, exist_ok=True)
    elections_path = args.out_dir / f"elections-{args.year}.json"
    meta_path = args.out_dir / "constituencies.json"

    if meta_path.exists():
        with open(meta_path, 'r', encoding='utf-8') as f:
            meta = merge_meta(json.load(f), meta, args.year)

    print(f"Writing {elections_path}...")
    with open(elections_path, 'w', encoding='utf-8') as f:
        json.dump(elections, f, indent=2, ensure_ascii=False)

    print(f"Writing {meta_path}...")
    with open(meta_path, 'w', encoding='utf-8') as f:
        json.dump(meta, f, indent=2, ensure_ascii=False)

    print("Done!")


if __name__ == '__main__':
    main()
