"""
performance - Parallel dispatch of independent orbit computations

    parallel  - PassWorkerPool: multiprocessing.Pool fan-out of pass
                prediction and launch-window requests with results returned
                in request order.
"""
