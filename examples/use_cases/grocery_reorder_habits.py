"""
Business Use Case: Grocery Re-order Habits.
Demonstrates how to use `basketmarkov` to learn, per customer, which products are
kept from one order to the next, and to turn that into next-basket suggestions.
"""

from basketmarkov import BasketMarkov, evaluate_next_basket, holdout_last_order
from basketmarkov.datasets import generate_order_history

def grocery_reorder_habits():
    df = generate_order_history(n_users=200, n_items=500, max_orders=12, repeat_rate=0.7)
    train, holdout = holdout_last_order(df)

    print("--- Grocery Re-order Insights ---")
    with BasketMarkov(n_items=500, n_workers=4) as db:
        db.load_orders(train)
        result = db.fit()
        print(f"Fitted {len(result.succeeded)} customers, {len(result.failed)} failed")

        # 1. Staples: products a customer keeps re-ordering (high p11)
        print("\n[Strategy 1] Staple products of customer 1:")
        staples = [r for r in db.model(1).records() if r["p11"] >= 0.8 and r["n11"] >= 2]
        for r in staples[:5]:
            print(f"Product {r['item_id']}: kept {r['n11']} times (p11={r['p11']:.2f})")

        # 2. Next-basket suggestions from the latest order
        print("\n[Strategy 2] Next basket for customer 1:")
        print(db.recommend(1, n=5).column("item_id").to_pylist())

        # 3. How well does the one-step model predict the held-out order?
        print("\n[Strategy 3] Next-basket evaluation (k=10):")
        scores = evaluate_next_basket(result.models, holdout, k=10).to_pylist()[-1]
        print(f"precision={scores['precision']:.3f} recall={scores['recall']:.3f} hit_rate={scores['hit_rate']:.3f}")

if __name__ == "__main__":
    grocery_reorder_habits()
