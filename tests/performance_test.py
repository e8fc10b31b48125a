#!/usr/bin/env python3
"""
Performance and quality checks for a running discovery service
"""
import json
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import requests

from discovery.auth import issue_token
from discovery.data_generator import DataGenerator

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class PerformanceTester:
    def __init__(self, base_url: str = "http://localhost:8000", seed: int = 42):
        self.base_url = base_url
        self.generator = DataGenerator(seed=seed)
        self.profile_ids: List[str] = []

    @staticmethod
    def headers_for(profile_id: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {issue_token(profile_id)}"}

    def seed_service(self, num_profiles: int = 200) -> List[str]:
        """Load generated profiles and preferences into the service"""
        logger.info(f"Seeding {num_profiles} profiles")
        for i in range(num_profiles):
            profile = self.generator.generate_profile(f"perf_{i + 1:04d}")
            preference = self.generator.generate_preference(profile)
            headers = self.headers_for(profile.id)

            requests.post(f"{self.base_url}/profiles", json=profile.model_dump(mode="json"),
                          headers=headers, timeout=30).raise_for_status()
            requests.post(f"{self.base_url}/preferences", json=preference.model_dump(mode="json"),
                          headers=headers, timeout=30).raise_for_status()
            self.profile_ids.append(profile.id)
        return self.profile_ids

    def run_single_request(self, profile_id: str, category: Optional[str] = None, size: int = 20) -> Dict:
        path = f"/matches/{category}" if category else "/matches"
        start_time = time.time()

        try:
            response = requests.get(
                f"{self.base_url}{path}",
                headers=self.headers_for(profile_id),
                params={"size": size},
                timeout=300,
            )
            response_time = (time.time() - start_time) * 1000

            if response.status_code == 200:
                data = response.json()
                scores = [m["compatibility_score"] for m in data.get("matches", [])]
                return {
                    "profile_id": profile_id,
                    "success": True,
                    "response_time_ms": response_time,
                    "matches_found": data.get("total_count", 0),
                    "skipped": data.get("skipped", 0),
                    "avg_score": float(np.mean(scores)) if scores else 0,
                    "max_score": max(scores) if scores else 0,
                    "error": None,
                }
            return {
                "profile_id": profile_id,
                "success": False,
                "response_time_ms": response_time,
                "error": f"HTTP {response.status_code}: {response.text}",
            }

        except requests.RequestException as e:
            return {
                "profile_id": profile_id,
                "success": False,
                "response_time_ms": (time.time() - start_time) * 1000,
                "error": str(e),
            }

    def run_concurrent_requests(self, profile_ids: List[str], max_workers: int = 5) -> List[Dict]:
        logger.info(f"Sending {len(profile_ids)} requests with {max_workers} workers")

        results = []
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_profile = {
                executor.submit(self.run_single_request, profile_id): profile_id
                for profile_id in profile_ids
            }
            for future in as_completed(future_to_profile):
                result = future.result()
                results.append(result)
                logger.debug(f"Done: {future_to_profile[future]} - {result['success']}")
        return results

    def load_performance(self, num_requests: int = 50) -> Dict:
        profile_ids = self.profile_ids[:num_requests]
        results = {}

        for concurrency in [1, 3, 5, 10]:
            if concurrency > len(profile_ids):
                continue

            start_time = time.time()
            concurrent_results = self.run_concurrent_requests(profile_ids[:20], concurrency)
            total_time = time.time() - start_time

            ok = [r for r in concurrent_results if r["success"]]
            times = [r["response_time_ms"] for r in ok]
            results[f"concurrency_{concurrency}"] = {
                "total_requests": len(concurrent_results),
                "successful_requests": len(ok),
                "success_rate": len(ok) / len(concurrent_results) * 100,
                "total_time_seconds": total_time,
                "avg_response_time_ms": float(np.mean(times)) if times else 0,
                "median_response_time_ms": float(np.median(times)) if times else 0,
                "p95_response_time_ms": float(np.percentile(times, 95)) if times else 0,
                "avg_matches_found": float(np.mean([r["matches_found"] for r in ok])) if ok else 0,
                "throughput_requests_per_second": len(ok) / total_time if total_time > 0 else 0,
            }

        return results

    def algorithm_quality(self, sample_size: int = 20) -> Dict:
        quality_results = [
            result for result in (self.run_single_request(pid) for pid in self.profile_ids[:sample_size])
            if result["success"]
        ]
        if not quality_results:
            return {"error": "no successful requests"}

        scores = [r["avg_score"] for r in quality_results if r["avg_score"] > 0]
        max_scores = [r["max_score"] for r in quality_results if r["max_score"] > 0]
        counts = [r["matches_found"] for r in quality_results]

        def share(predicate) -> float:
            return len([s for s in scores if predicate(s)]) / len(scores) * 100 if scores else 0

        return {
            "total_tested": len(quality_results),
            "avg_score_mean": float(np.mean(scores)) if scores else 0,
            "avg_score_std": float(np.std(scores)) if scores else 0,
            "max_score_mean": float(np.mean(max_scores)) if max_scores else 0,
            "avg_matches_found": float(np.mean(counts)),
            "matches_found_std": float(np.std(counts)),
            "score_distribution": {
                "excellent": share(lambda s: s >= 80),
                "good": share(lambda s: 60 <= s < 80),
                "fair": share(lambda s: 40 <= s < 60),
                "poor": share(lambda s: s < 40),
            },
        }

    def generate_performance_report(self, output_file: str = "performance_report.json") -> Dict:
        report = {
            "test_timestamp": time.strftime("%Y-%m-%d %H:%M:%S"),
            "load_performance": self.load_performance(50),
            "algorithm_quality": self.algorithm_quality(20),
        }

        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(report, f, ensure_ascii=False, indent=2)

        logger.info(f"Performance report saved to {output_file}")
        return report

    def create_performance_visualizations(self, report: Dict, output_dir: str = "performance_charts"):
        os.makedirs(output_dir, exist_ok=True)

        rows = []
        for key, value in report.get("load_performance", {}).items():
            if key.startswith("concurrency_"):
                rows.append({
                    "concurrency": int(key.split("_")[1]),
                    "avg_response_time": value["avg_response_time_ms"],
                    "p95_response_time": value["p95_response_time_ms"],
                    "throughput": value["throughput_requests_per_second"],
                })

        if rows:
            df_perf = pd.DataFrame(rows).sort_values("concurrency")
            fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(15, 6))

            ax1.plot(df_perf["concurrency"], df_perf["avg_response_time"], "o-", label="Average Response Time")
            ax1.plot(df_perf["concurrency"], df_perf["p95_response_time"], "s-", label="95th Percentile")
            ax1.set_xlabel("Concurrency Level")
            ax1.set_ylabel("Response Time (ms)")
            ax1.set_title("Response Time vs Concurrency")
            ax1.legend()
            ax1.grid(True)

            ax2.plot(df_perf["concurrency"], df_perf["throughput"], "o-", color="green")
            ax2.set_xlabel("Concurrency Level")
            ax2.set_ylabel("Requests per Second")
            ax2.set_title("Throughput vs Concurrency")
            ax2.grid(True)

            plt.tight_layout()
            plt.savefig(f"{output_dir}/performance_metrics.png", dpi=300, bbox_inches="tight")
            plt.close()

        dist = report.get("algorithm_quality", {}).get("score_distribution")
        if dist:
            plt.figure(figsize=(10, 6))
            bars = plt.bar(list(dist.keys()), list(dist.values()),
                           color=["#2ecc71", "#f39c12", "#e67e22", "#e74c3c"])
            plt.xlabel("Score Band")
            plt.ylabel("Percentage (%)")
            plt.title("Distribution of Compatibility Scores")
            for bar, value in zip(bars, dist.values()):
                plt.text(bar.get_x() + bar.get_width() / 2, bar.get_height() + 1,
                         f"{value:.1f}%", ha="center", va="bottom")
            plt.grid(True, alpha=0.3)
            plt.tight_layout()
            plt.savefig(f"{output_dir}/quality_distribution.png", dpi=300, bbox_inches="tight")
            plt.close()

        logger.info(f"Charts saved to {output_dir}")


def main():
    tester = PerformanceTester()
    tester.seed_service(200)

    report = tester.generate_performance_report()
    tester.create_performance_visualizations(report)

    print("\n" + "=" * 50)
    print("Performance summary")
    print("=" * 50)

    for key, value in report["load_performance"].items():
        print(f"  {key}:")
        print(f"    Success Rate: {value['success_rate']:.1f}%")
        print(f"    Avg Response Time: {value['avg_response_time_ms']:.0f}ms")
        print(f"    Throughput: {value['throughput_requests_per_second']:.2f} req/sec")

    quality = report["algorithm_quality"]
    print("\nCompatibility quality:")
    print(f"  Requests tested: {quality.get('total_tested', 0)}")
    print(f"  Mean score: {quality.get('avg_score_mean', 0):.1f}")
    print(f"  Mean best score: {quality.get('max_score_mean', 0):.1f}")
    print(f"  Mean listing size: {quality.get('avg_matches_found', 0):.1f}")


if __name__ == "__main__":
    main()
